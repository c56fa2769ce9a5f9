"""Tests for the quotation session state."""

import threading
import time
from datetime import date

import pytest

from config import Config
from errors import InvalidInput, NotFoundError, ValidationError
from models import CatalogEntry, CatalogModel, Party, SavedQuotationRecord
from session import QuotationSession

TODAY = date(2026, 3, 10)


@pytest.fixture
def session():
    return QuotationSession(
        default_business=Config.DEFAULT_BUSINESS,
        default_terms=Config.DEFAULT_TERMS,
        default_hsn_sac=Config.DEFAULT_HSN_SAC,
        edit_debounce=5.0,
        print_delay=5.0,
        today=lambda: TODAY,
    )


@pytest.fixture
def party():
    return Party(id="p-1", name="Ravi Kumar", display_id="101", phone="98765", address="Lucknow")


def add_cpu(session, **overrides):
    fields = dict(category="Processor", brand="Intel", model="Core i5-12400F",
                  purchase_incl_tax=16000, sale_incl_tax=18500)
    fields.update(overrides)
    return session.add_item(**fields)


class TestInitialState:
    def test_starts_empty(self, session):
        assert session.selected_party is None
        assert len(session.items) == 0
        assert session.current_quotation_id is None
        assert session.is_revision is False
        assert session.revision_number is None
        assert session.quotation_number == ""

    def test_dates_default_to_today_and_fifteen_days(self, session):
        assert session.quotation_date == TODAY
        assert session.valid_until == date(2026, 3, 25)

    def test_business_details_default(self, session):
        assert session.business_details.name == "EmpressPC"
        assert session.terms == Config.DEFAULT_TERMS

    def test_from_config(self):
        config = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}
        built = QuotationSession.from_config(config)
        assert built.default_tax_rate == Config.DEFAULT_GST_RATE
        assert built.validity_days == Config.QUOTATION_VALIDITY_DAYS


class TestMutators:
    def test_selected_party_is_a_copy(self, session, party):
        session.set_selected_party(party)
        party.name = "Changed"
        assert session.selected_party.name == "Ravi Kumar"

    def test_set_business_details_partial(self, session):
        session.set_business_details(phone="+91 1111111111")
        assert session.business_details.phone == "+91 1111111111"
        assert session.business_details.name == "EmpressPC"

    def test_set_notes_terms_dates(self, session):
        session.set_notes("Assembled build")
        session.set_terms("Net 15")
        session.set_dates(valid_until=date(2026, 4, 1))
        assert session.notes == "Assembled build"
        assert session.terms == "Net 15"
        assert session.quotation_date == TODAY
        assert session.valid_until == date(2026, 4, 1)


class TestItems:
    def test_compute_totals_tracks_items(self, session):
        item = add_cpu(session, quantity=2)
        totals = session.compute_totals()
        assert totals.total_sale == 37000
        assert totals.total_margin == 5000

        session.update_item(item.id, quantity=1)
        assert session.compute_totals().total_sale == 18500

        session.remove_item(item.id)
        assert session.compute_totals().total_sale == 0

    def test_exclusive_price_edit_updates_inclusive_price(self, session):
        item = add_cpu(session)
        updated = session.update_item(item.id, sale_excl_tax=20000)
        assert updated.sale_incl_tax == pytest.approx(23600)

    def test_exclusive_price_edit_uses_new_rate(self, session):
        item = add_cpu(session)
        updated = session.update_item(item.id, purchase_excl_tax=100, tax_rate_percent=28)
        assert updated.purchase_incl_tax == pytest.approx(128)
        assert updated.tax_rate_percent == 28

    def test_add_catalog_item(self, session):
        entry = CatalogEntry(category="SSD", brand="Samsung", models=[])
        model = CatalogModel(model="980 PRO 1TB NVMe", hsn_sac="84717020", warranty="5 Years",
                             purchase_incl_tax=7500, sale_incl_tax=8500)
        item = session.add_catalog_item(entry, model)
        assert item.brand == "Samsung"
        assert item.hsn_sac == "84717020"
        assert item.quantity == 1
        assert item.tax_rate_percent == 18.0

    def test_debounced_edits_keep_latest_value(self, session):
        item = add_cpu(session)
        for qty in (2, 3, 4, 5):
            session.edit_item_field(item.id, "quantity", qty)
        assert session.items.get(item.id).quantity == 1
        session.flush_edits()
        assert session.items.get(item.id).quantity == 5

    def test_debounced_edits_on_different_fields_do_not_interfere(self, session):
        item = add_cpu(session)
        session.edit_item_field(item.id, "quantity", 3)
        session.edit_item_field(item.id, "warranty", "3 Years")
        session.flush_edits()
        current = session.items.get(item.id)
        assert current.quantity == 3
        assert current.warranty == "3 Years"


    def test_removing_item_drops_its_pending_edits(self, session):
        gone = add_cpu(session)
        kept = add_cpu(session, model="Core i7-12700K")
        session.edit_item_field(gone.id, "quantity", 3)
        session.edit_item_field(kept.id, "quantity", 2)
        session.remove_item(gone.id)
        session.flush_edits()
        assert [(i.id, i.quantity) for i in session.items] == [(kept.id, 2)]

    def test_pending_edit_for_vanished_item_is_dropped(self, session):
        item = add_cpu(session)
        session._apply_edit(item.id, "quantity", 2)
        session.items.remove(item.id)
        session._apply_edit(item.id, "quantity", 3)
        assert len(session.items) == 0

    @pytest.mark.parametrize("field,value", [
        ("quantity", 0),
        ("tax_rate_percent", -100),
        ("sale_incl_tax", float("nan")),
    ])
    def test_bad_debounced_value_fails_immediately(self, session, field, value):
        item = add_cpu(session)
        with pytest.raises(ValidationError):
            session.edit_item_field(item.id, field, value)
        session.flush_edits()
        assert session.items.get(item.id) == item

    def test_debounced_edit_of_unknown_item(self, session):
        with pytest.raises(NotFoundError):
            session.edit_item_field("item-404", "quantity", 2)

    def test_add_item_with_exclusive_price(self, session):
        item = session.add_item(category="RAM", brand="Corsair", model="Kit", sale_excl_tax=100,
                                tax_rate_percent=28)
        assert item.sale_incl_tax == pytest.approx(128)

    def test_add_item_with_unconvertible_price_stores_nothing(self, session):
        with pytest.raises(InvalidInput):
            session.add_item(category="RAM", brand="Corsair", model="Kit", sale_excl_tax=float("nan"))
        assert len(session.items) == 0


class TestPrintMode:
    def test_toggle_flips_flag(self, session):
        assert session.toggle_print_mode() is True
        assert session.toggle_print_mode() is False

    def test_print_triggered_once_on_entry(self):
        printed = threading.Event()
        calls = []

        def handler(s):
            calls.append(s)
            printed.set()

        s = QuotationSession(print_delay=0.01, print_handler=handler, today=lambda: TODAY)
        s.toggle_print_mode()
        assert printed.wait(2)
        assert calls == [s]

    def test_leaving_print_mode_cancels_pending_print(self):
        calls = []
        s = QuotationSession(print_delay=0.2, print_handler=calls.append, today=lambda: TODAY)
        s.toggle_print_mode()
        s.toggle_print_mode()
        time.sleep(0.4)
        assert calls == []


class TestReset:
    def test_reset_clears_everything(self, session, party):
        session.set_selected_party(party)
        add_cpu(session)
        session.set_notes("note")
        session.set_dates(quotation_date=date(2025, 1, 1), valid_until=date(2025, 2, 1))
        session.mark_saved(SavedQuotationRecord(id="q-1", quotation_number="QT-1",
                                                revision_number=2, revision_of_id="q-0"))
        session.toggle_print_mode()

        session.reset()

        assert session.selected_party is None
        assert len(session.items) == 0
        assert session.notes == ""
        assert session.terms == Config.DEFAULT_TERMS
        assert session.quotation_date == TODAY
        assert session.valid_until == date(2026, 3, 25)
        assert session.current_quotation_id is None
        assert session.is_revision is False
        assert session.revision_number is None
        assert session.revision_of_id is None
        assert session.quotation_number == ""
        assert session.print_mode is False


class TestPersistenceSupport:
    def test_validation_problems_party_first(self, session):
        problems = session.validation_problems()
        assert len(problems) == 2
        assert "party" in problems[0]
        assert "item" in problems[1]

    def test_validation_requires_item_identity(self, session, party):
        session.set_selected_party(party)
        add_cpu(session, brand=" ")
        assert session.validation_problems() == [
            "Item 1 is missing required fields (category, brand, model)"
        ]

    def test_payload_includes_client_totals_and_default_hsn(self, session, party):
        session.set_selected_party(party)
        add_cpu(session, quantity=2)
        payload = session.to_payload("Quotation for Ravi Kumar")
        assert payload["party_id"] == "p-1"
        assert payload["title"] == "Quotation for Ravi Kumar"
        assert payload["total_amount"] == 37000
        assert payload["total_purchase"] == 32000
        assert payload["total_tax"] == pytest.approx(5644.07, abs=0.01)
        assert payload["items"][0]["hsn_sac"] == Config.DEFAULT_HSN_SAC
        assert payload["items"][0]["sale_with_gst"] == 18500
        assert "id" not in payload["items"][0]
        assert payload["date"] == "2026-03-10"
        assert payload["valid_until"] == "2026-03-25"
        assert payload["status"] == "draft"

    def test_hydrate_replaces_state(self, session, party):
        add_cpu(session, model="stale")
        record = SavedQuotationRecord(
            id="q-9",
            title="Quotation for Ravi Kumar (2)",
            quotation_number="QT-000009",
            date=date(2026, 1, 5),
            valid_until=date(2026, 1, 20),
            revision_number=2,
            revision_of_id="q-7",
            party=party,
            party_id=party.id,
            items=[
                {"category": "RAM", "brand": "Corsair", "model": "Vengeance LPX 16GB DDR4",
                 "hsn_sac": "84733092", "warranty": "10 Years", "quantity": 2,
                 "purchase_with_gst": 4000, "sale_with_gst": 4600, "gst_percentage": 18},
                {"category": "SSD", "brand": "Samsung", "model": "980 PRO 1TB NVMe",
                 "HSN/SAC": "84717020", "quantity": 1,
                 "purchase_with_gst": 7500, "sale_with_gst": 8500},
            ],
            business_details={"name": "Other Shop", "phone": ""},
            notes="Loaded",
            terms="Terms",
        )

        session.hydrate(record)

        assert [i.model for i in session.items] == ["Vengeance LPX 16GB DDR4", "980 PRO 1TB NVMe"]
        assert session.items.list()[1].hsn_sac == "84717020"
        assert session.items.list()[1].tax_rate_percent == 18.0
        assert session.selected_party == party
        assert session.business_details.name == "Other Shop"
        assert session.business_details.phone == Config.DEFAULT_BUSINESS["phone"]
        assert session.current_quotation_id == "q-9"
        assert session.quotation_number == "QT-000009"
        assert session.is_revision is True
        assert session.revision_number == 2
        assert session.revision_of_id == "q-7"
        assert session.quotation_date == date(2026, 1, 5)
        assert session.notes == "Loaded"

    def test_hydrate_assigns_fresh_ids(self, session):
        record = SavedQuotationRecord(id="q-1", items=[
            {"category": "Cabinet", "brand": "NZXT", "model": "H510", "quantity": 1,
             "purchase_with_gst": 5200, "sale_with_gst": 5900},
        ] * 3)
        session.hydrate(record)
        assert len({i.id for i in session.items}) == 3

    def test_hydrate_without_revision_number(self, session):
        session.hydrate(SavedQuotationRecord(id="q-1", title="Quotation for X"))
        assert session.is_revision is False
        assert session.revision_number is None

    def test_to_dict_contains_totals(self, session):
        add_cpu(session)
        data = session.to_dict()
        assert data["totals"]["total_sale"] == 18500
        assert data["items"][0]["model"] == "Core i5-12400F"
        assert data["quotation_date"] == "2026-03-10"

    def test_failed_hydrate_keeps_current_quotation(self, session, party):
        session.set_selected_party(party)
        add_cpu(session)
        session.set_notes("Current")
        record = SavedQuotationRecord(id="q-2", title="Broken", party_id="p-9", notes="Other", items=[
            {"category": "RAM", "brand": "Corsair", "model": "Kit", "quantity": 1,
             "purchase_with_gst": 4000, "sale_with_gst": 4600},
            {"category": "SSD", "brand": "Samsung", "model": "980 PRO", "quantity": -2,
             "purchase_with_gst": 7500, "sale_with_gst": 8500},
        ])

        with pytest.raises(ValidationError):
            session.hydrate(record)

        assert session.selected_party == party
        assert [i.model for i in session.items] == ["Core i5-12400F"]
        assert session.notes == "Current"
        assert session.current_quotation_id is None
