"""GST price conversions and quotation totals.

Tax-exclusive prices are never stored on a line item; every function here
derives them from the stored tax-inclusive price and the item's rate, so the
totals can never go stale.
"""

import math
from dataclasses import dataclass

from errors import InvalidInput

TOLERANCE = 1e-6


@dataclass(frozen=True)
class LineTotals:
    purchase_total: float
    sale_total: float
    tax_total: float
    margin: float


@dataclass(frozen=True)
class Totals:
    total_purchase: float
    total_sale: float
    total_tax: float
    total_margin: float
    margin_percent: float

    @property
    def total_sale_excl_tax(self):
        return self.total_sale - self.total_tax

    def to_dict(self):
        return {
            'total_purchase': self.total_purchase,
            'total_sale': self.total_sale,
            'total_tax': self.total_tax,
            'total_sale_excl_tax': self.total_sale_excl_tax,
            'total_margin': self.total_margin,
            'margin_percent': self.margin_percent,
        }


def _tax_factor(price, tax_rate_percent):
    try:
        price = float(price)
        tax_rate_percent = float(tax_rate_percent)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Price and tax rate must be numbers: {e}") from e
    if not math.isfinite(price) or not math.isfinite(tax_rate_percent):
        raise InvalidInput("Price and tax rate must be finite")
    if tax_rate_percent <= -100:
        raise InvalidInput(f"Tax rate must be greater than -100%, got {tax_rate_percent}")
    return price, 1 + tax_rate_percent / 100


def price_excl_tax(price_incl_tax, tax_rate_percent):
    """Strip GST from a tax-inclusive price."""
    price, factor = _tax_factor(price_incl_tax, tax_rate_percent)
    return price / factor


def price_incl_tax(price_excl_tax, tax_rate_percent):
    """Add GST to a tax-exclusive price."""
    price, factor = _tax_factor(price_excl_tax, tax_rate_percent)
    return price * factor


def line_total(item):
    """Totals for one line item, scaled by its quantity."""
    qty = item.quantity
    sale_unit_tax = item.sale_incl_tax - price_excl_tax(item.sale_incl_tax, item.tax_rate_percent)
    purchase_total = item.purchase_incl_tax * qty
    sale_total = item.sale_incl_tax * qty
    return LineTotals(
        purchase_total=purchase_total,
        sale_total=sale_total,
        tax_total=sale_unit_tax * qty,
        margin=sale_total - purchase_total,
    )


def aggregate(items):
    """Sum line totals over ``items``; margin percent is 0 for an empty sale."""
    total_purchase = 0.0
    total_sale = 0.0
    total_tax = 0.0
    for item in items:
        line = line_total(item)
        total_purchase += line.purchase_total
        total_sale += line.sale_total
        total_tax += line.tax_total

    total_margin = total_sale - total_purchase
    margin_percent = 0.0 if total_sale == 0 else total_margin / total_sale * 100
    return Totals(
        total_purchase=total_purchase,
        total_sale=total_sale,
        total_tax=total_tax,
        total_margin=total_margin,
        margin_percent=margin_percent,
    )


def amounts_equal(a, b, rel_tol=TOLERANCE):
    return math.isclose(a, b, rel_tol=rel_tol, abs_tol=TOLERANCE)
