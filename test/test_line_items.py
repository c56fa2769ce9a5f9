import pytest

from errors import NotFoundError, ValidationError
from line_items import LineItemStore


@pytest.fixture
def store():
    return LineItemStore(default_tax_rate=18.0)


def add_cpu(store, **overrides):
    fields = dict(category="Processor", brand="Intel", model="Core i5-12400F",
                  purchase_incl_tax=16000, sale_incl_tax=18500)
    fields.update(overrides)
    return store.add(**fields)


class TestAdd:
    def test_defaults_quantity_and_tax_rate(self, store):
        item = add_cpu(store)
        assert item.quantity == 1
        assert item.tax_rate_percent == 18.0

    def test_keeps_explicit_values(self, store):
        item = add_cpu(store, quantity=3, tax_rate_percent=28)
        assert item.quantity == 3
        assert item.tax_rate_percent == 28

    def test_rapid_adds_get_unique_ids(self, store):
        ids = {add_cpu(store).id for _ in range(500)}
        assert len(ids) == 500

    def test_insertion_order_preserved(self, store):
        first = add_cpu(store, model="A")
        second = add_cpu(store, model="B")
        third = add_cpu(store, model="C")
        assert [i.id for i in store.list()] == [first.id, second.id, third.id]

    def test_rejects_unknown_fields(self, store):
        with pytest.raises(TypeError):
            store.add(model="X", colour="red")

    @pytest.mark.parametrize("overrides", [
        {"quantity": 0},
        {"quantity": 1.5},
        {"purchase_incl_tax": -1},
        {"sale_incl_tax": -0.01},
        {"sale_incl_tax": float("nan")},
        {"purchase_incl_tax": float("inf")},
        {"sale_incl_tax": "100"},
        {"tax_rate_percent": -100},
        {"tax_rate_percent": -150},
        {"tax_rate_percent": float("nan")},
    ])
    def test_rejects_invalid_values(self, store, overrides):
        with pytest.raises(ValidationError):
            add_cpu(store, **overrides)
        assert len(store) == 0


class TestUpdate:
    def test_merges_partial_fields(self, store):
        item = add_cpu(store)
        updated = store.update(item.id, quantity=4, warranty="3 Years")
        assert updated.quantity == 4
        assert updated.warranty == "3 Years"
        assert updated.sale_incl_tax == 18500
        assert store.get(item.id) == updated

    def test_unknown_id_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.update("item-404", quantity=2)

    def test_does_not_derive_paired_price(self, store):
        item = add_cpu(store)
        updated = store.update(item.id, tax_rate_percent=28)
        assert updated.sale_incl_tax == 18500

    def test_rejected_update_leaves_item_unchanged(self, store):
        item = add_cpu(store)
        with pytest.raises(ValidationError):
            store.update(item.id, tax_rate_percent=-100)
        with pytest.raises(ValidationError):
            store.update(item.id, sale_incl_tax=float("nan"))
        assert store.get(item.id) == item

    def test_preview_does_not_store(self, store):
        item = add_cpu(store)
        assert store.preview(item.id, quantity=7).quantity == 7
        assert store.get(item.id).quantity == 1

    def test_rate_just_above_minus_hundred_is_accepted(self, store):
        assert add_cpu(store, tax_rate_percent=-99.5).tax_rate_percent == -99.5

    def test_id_cannot_be_changed(self, store):
        item = add_cpu(store)
        with pytest.raises(TypeError):
            store.update(item.id, id="other")


class TestRemove:
    def test_removes_item(self, store):
        keep = add_cpu(store)
        gone = add_cpu(store)
        store.remove(gone.id)
        assert store.list() == [keep]

    def test_missing_id_is_a_no_op(self, store):
        add_cpu(store)
        store.remove("item-404")
        store.remove("item-404")
        assert len(store) == 1

    def test_clear(self, store):
        add_cpu(store)
        store.clear()
        assert store.list() == []


def test_list_returns_a_copy(store):
    add_cpu(store)
    snapshot = store.list()
    snapshot.clear()
    assert len(store) == 1
