"""Quotation editing state.

A QuotationSession is created once per quotation-editing flow and handed to
whatever needs it; there is no module-level instance.
"""

import logging
from dataclasses import replace
from datetime import date, timedelta

import pricing
from catalog import Catalog
from debounce import Debouncer, DebouncerGroup
from errors import NotFoundError
from line_items import LineItemStore
from models import BusinessDetails, Party, candidate_from_payload

logger = logging.getLogger(__name__)

_EXCL_TAX_FIELDS = {
    'purchase_excl_tax': 'purchase_incl_tax',
    'sale_excl_tax': 'sale_incl_tax',
}


class QuotationSession:
    def __init__(self, default_business=None, default_tax_rate=18.0, validity_days=15,
                 default_terms='', default_hsn_sac='', edit_debounce=0.3,
                 print_delay=0.5, print_handler=None, today=date.today):
        self.default_business = dict(default_business or {})
        self.default_tax_rate = default_tax_rate
        self.validity_days = validity_days
        self.default_terms = default_terms
        self.default_hsn_sac = default_hsn_sac
        self.print_handler = print_handler
        self._today = today

        self.items = LineItemStore(default_tax_rate=default_tax_rate)
        self._edits = DebouncerGroup(wait=edit_debounce)
        self._print = Debouncer(self._trigger_print, wait=print_delay)
        self.reset()

    @classmethod
    def from_config(cls, config, **kwargs):
        """Build a session from a Flask-style config mapping."""
        return cls(
            default_business=config['DEFAULT_BUSINESS'],
            default_tax_rate=config['DEFAULT_GST_RATE'],
            validity_days=config['QUOTATION_VALIDITY_DAYS'],
            default_terms=config['DEFAULT_TERMS'],
            default_hsn_sac=config['DEFAULT_HSN_SAC'],
            edit_debounce=config['EDIT_DEBOUNCE'],
            print_delay=config['PRINT_DELAY'],
            **kwargs,
        )

    def reset(self):
        """Return to an empty quotation dated today, valid for the configured days."""
        self._edits.cancel()
        self._print.cancel()
        self.items.clear()
        self.business_details = BusinessDetails.from_dict(self.default_business)
        self.selected_party = None
        self.quotation_number = ''
        self.quotation_date = self._today()
        self.valid_until = self.quotation_date + timedelta(days=self.validity_days)
        self.notes = ''
        self.terms = self.default_terms
        self.print_mode = False
        self.current_quotation_id = None
        self.is_revision = False
        self.revision_number = None
        self.revision_of_id = None

    # -- simple mutators ---------------------------------------------------

    def set_selected_party(self, party):
        self.selected_party = replace(party) if party is not None else None

    def set_business_details(self, **partial):
        self.business_details = replace(self.business_details, **partial)

    def set_notes(self, notes):
        self.notes = notes or ''

    def set_terms(self, terms):
        self.terms = terms or ''

    def set_dates(self, quotation_date=None, valid_until=None):
        if quotation_date is not None:
            self.quotation_date = quotation_date
        if valid_until is not None:
            self.valid_until = valid_until

    # -- line items ----------------------------------------------------------

    def _to_inclusive(self, changes, rate):
        """Replace ``*_excl_tax`` keys in ``changes`` with the stored inclusive prices."""
        for key in [k for k in changes if k in _EXCL_TAX_FIELDS]:
            changes[_EXCL_TAX_FIELDS[key]] = pricing.price_incl_tax(changes.pop(key), rate)
        return changes

    def add_item(self, **candidate):
        rate = candidate.get('tax_rate_percent')
        if rate is None:
            rate = self.default_tax_rate
        return self.items.add(**self._to_inclusive(candidate, rate))

    def add_catalog_item(self, entry, catalog_model, quantity=1):
        return self.items.add(**Catalog.to_line_item_candidate(entry, catalog_model, quantity))

    def update_item(self, item_id, **changes):
        """Apply an edit; exclusive prices are converted to the stored inclusive ones."""
        if any(key in _EXCL_TAX_FIELDS for key in changes):
            rate = changes.get('tax_rate_percent')
            if rate is None:
                rate = self.items.get(item_id).tax_rate_percent
            self._to_inclusive(changes, rate)
        return self.items.update(item_id, **changes)

    def edit_item_field(self, item_id, field, value):
        """Debounced single-field edit; the latest value wins.

        The value is checked against the item now, so a bad value fails the
        caller instead of the timer thread.
        """
        changes = {field: value}
        if field in _EXCL_TAX_FIELDS:
            self._to_inclusive(changes, self.items.get(item_id).tax_rate_percent)
        self.items.preview(item_id, **changes)
        self._edits.call((item_id, field), self._apply_edit, item_id, field, value)

    def _apply_edit(self, item_id, field, value):
        try:
            self.update_item(item_id, **{field: value})
        except NotFoundError:
            logger.info(f"Dropped edit of {field} on removed line item {item_id}")

    def flush_edits(self):
        self._edits.flush()

    def remove_item(self, item_id):
        self._edits.cancel_where(lambda key: key[0] == item_id)
        self.items.remove(item_id)

    def compute_totals(self):
        return pricing.aggregate(self.items)

    # -- print mode ----------------------------------------------------------

    def toggle_print_mode(self):
        self.print_mode = not self.print_mode
        if self.print_mode:
            # Let the printable layout settle before the print dialog opens
            self._print()
        else:
            self._print.cancel()
        return self.print_mode

    def _trigger_print(self):
        if self.print_mode and self.print_handler is not None:
            logger.info(f"Printing quotation {self.quotation_number or '(unsaved)'}")
            self.print_handler(self)

    # -- persistence support ---------------------------------------------------

    def validation_problems(self):
        """Preconditions for saving, party first."""
        problems = []
        if self.selected_party is None or not self.selected_party.id:
            problems.append("Please select a party for this quotation")
        if len(self.items) == 0:
            problems.append("Please add at least one item to the quotation")
        for index, item in enumerate(self.items, start=1):
            if not item.category.strip() or not item.brand.strip() or not item.model.strip():
                problems.append(f"Item {index} is missing required fields (category, brand, model)")
        return problems

    def to_payload(self, title, totals=None):
        totals = totals or self.compute_totals()
        items = []
        for item in self.items:
            data = item.to_payload()
            data['hsn_sac'] = data['hsn_sac'] or self.default_hsn_sac
            items.append(data)
        business = BusinessDetails.from_dict(self.business_details.to_dict(), defaults=self.default_business)
        return {
            'party_id': self.selected_party.id,
            'title': title,
            'date': self.quotation_date.isoformat(),
            'valid_until': self.valid_until.isoformat(),
            'business_details': business.to_dict(),
            'items': items,
            'total_amount': totals.total_sale,
            'total_purchase': totals.total_purchase,
            'total_tax': totals.total_tax,
            'notes': self.notes,
            'terms_conditions': self.terms,
            'status': 'draft',
        }

    def mark_saved(self, record):
        self.current_quotation_id = record.id
        if record.quotation_number:
            self.quotation_number = record.quotation_number
        self.is_revision = record.revision_number is not None
        self.revision_number = record.revision_number
        self.revision_of_id = record.revision_of_id

    def hydrate(self, record, party=None):
        """Replace all state with a saved quotation; items get fresh local ids.

        Items are validated into a new store first, so a record that cannot
        be loaded leaves the current quotation untouched.
        """
        items = LineItemStore(default_tax_rate=self.default_tax_rate)
        for raw in record.items:
            items.add(**candidate_from_payload(raw))
        party = party or record.party
        if party is None and record.party_id:
            party = Party(id=record.party_id, name='')
        business = BusinessDetails.from_dict(record.business_details, defaults=self.default_business)

        self.reset()
        self.items = items
        self.selected_party = party
        self.business_details = business
        self.quotation_number = record.quotation_number
        self.quotation_date = record.date or self._today()
        self.valid_until = record.valid_until or self.quotation_date + timedelta(days=self.validity_days)
        self.notes = record.notes
        self.terms = record.terms
        self.mark_saved(record)
        logger.info(f"Loaded quotation {record.id} with {len(self.items)} items")

    def to_dict(self):
        return {
            'business_details': self.business_details.to_dict(),
            'selected_party': self.selected_party.to_dict() if self.selected_party else None,
            'items': [item.to_dict() for item in self.items],
            'quotation_number': self.quotation_number,
            'quotation_date': self.quotation_date.isoformat(),
            'valid_until': self.valid_until.isoformat(),
            'notes': self.notes,
            'terms': self.terms,
            'print_mode': self.print_mode,
            'current_quotation_id': self.current_quotation_id,
            'is_revision': self.is_revision,
            'revision_number': self.revision_number,
            'revision_of_id': self.revision_of_id,
            'totals': self.compute_totals().to_dict(),
        }
