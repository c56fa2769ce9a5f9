"""Data for the printable quotation."""

import pricing
from formatting import amount_in_words, format_date, format_inr


def build_document(session):
    """Everything the print template needs, already formatted."""
    totals = session.compute_totals()
    lines = []
    for index, item in enumerate(session.items, start=1):
        unit_excl = pricing.price_excl_tax(item.sale_incl_tax, item.tax_rate_percent)
        line = pricing.line_total(item)
        lines.append({
            'serial': index,
            'description': f"{item.brand} {item.model}".strip(),
            'category': item.category,
            'hsn_sac': item.hsn_sac or session.default_hsn_sac,
            'warranty': item.warranty,
            'quantity': item.quantity,
            'rate': format_inr(unit_excl),
            'gst_percent': f"{item.tax_rate_percent:g}%",
            'tax': format_inr(line.tax_total),
            'amount': format_inr(line.sale_total),
        })

    party = session.selected_party
    return {
        'business': session.business_details.to_dict(),
        'party': party.to_dict() if party else None,
        'quotation_number': session.quotation_number or 'DRAFT',
        'date': format_date(session.quotation_date),
        'valid_until': format_date(session.valid_until),
        'lines': lines,
        'subtotal': format_inr(totals.total_sale_excl_tax),
        'tax': format_inr(totals.total_tax),
        'total': format_inr(totals.total_sale),
        'amount_in_words': amount_in_words(totals.total_sale),
        'notes': session.notes,
        'terms': [line for line in session.terms.splitlines() if line.strip()],
    }
