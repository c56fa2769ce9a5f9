"""In-memory line items of one quotation."""

import itertools
import logging
import math
from dataclasses import fields, replace

from errors import NotFoundError, ValidationError
from models import LineItem

logger = logging.getLogger(__name__)

_EDITABLE = {f.name for f in fields(LineItem)} - {'id'}


def _finite(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check(item):
    problems = []
    if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity < 1:
        problems.append("Quantity must be a whole number of at least 1")
    if not _finite(item.purchase_incl_tax):
        problems.append("Purchase price must be a finite number")
    elif item.purchase_incl_tax < 0:
        problems.append("Purchase price cannot be negative")
    if not _finite(item.sale_incl_tax):
        problems.append("Sale price must be a finite number")
    elif item.sale_incl_tax < 0:
        problems.append("Sale price cannot be negative")
    if not _finite(item.tax_rate_percent):
        problems.append("Tax rate must be a finite number")
    elif item.tax_rate_percent <= -100:
        problems.append("Tax rate must be greater than -100%")
    if problems:
        raise ValidationError("; ".join(problems), problems=problems)
    return item


class LineItemStore:
    """Ordered line items with session-local ids.

    Ids come from a per-store counter, so rapid successive adds can never
    collide. The store does not derive prices: callers convert exclusive
    prices before calling ``update``.
    """

    def __init__(self, default_tax_rate=18.0):
        self.default_tax_rate = default_tax_rate
        self._items = []
        self._ids = itertools.count(1)

    def _next_id(self):
        return f"item-{next(self._ids)}"

    def add(self, **candidate):
        unknown = set(candidate) - _EDITABLE
        if unknown:
            raise TypeError(f"Unknown line item fields: {sorted(unknown)}")
        if candidate.get('quantity') is None:
            candidate['quantity'] = 1
        if candidate.get('tax_rate_percent') is None:
            candidate['tax_rate_percent'] = self.default_tax_rate
        candidate.setdefault('category', '')
        candidate.setdefault('brand', '')
        candidate.setdefault('model', '')

        item = _check(LineItem(id=self._next_id(), **candidate))
        self._items.append(item)
        logger.debug(f"Added line item {item.id}: {item.brand} {item.model}")
        return item

    def get(self, item_id):
        for item in self._items:
            if item.id == item_id:
                return item
        raise NotFoundError(f"Line item {item_id} not found")

    def preview(self, item_id, **changes):
        """The item ``update`` would store, checked but not stored."""
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise TypeError(f"Unknown line item fields: {sorted(unknown)}")
        return _check(replace(self.get(item_id), **changes))

    def update(self, item_id, **changes):
        updated = self.preview(item_id, **changes)
        self._items = [updated if item.id == item_id else item for item in self._items]
        return updated

    def remove(self, item_id):
        self._items = [item for item in self._items if item.id != item_id]

    def clear(self):
        self._items = []

    def list(self):
        return list(self._items)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))
