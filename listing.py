"""Client-side search, sort and summary figures over fetched records."""

from datetime import date

_EPOCH = date.min


def filter_quotations(records, term):
    term = (term or '').strip().lower()
    if not term:
        return list(records)

    def matches(q):
        return any(term in (value or '').lower() for value in (
            q.title, q.quotation_number, q.party_name or 'Unknown', q.notes, q.status.value,
        ))

    return [q for q in records if matches(q)]


_SORT_KEYS = {
    'date': lambda q: q.date or _EPOCH,
    'valid_until': lambda q: q.valid_until or _EPOCH,
    'party': lambda q: q.party_name.lower(),
    'total_amount': lambda q: q.total_amount,
    'status': lambda q: q.status.value,
    'title': lambda q: q.title.lower(),
}


def sort_quotations(records, field='date', direction='desc'):
    if field not in _SORT_KEYS:
        raise ValueError(f"Cannot sort quotations by {field!r}")
    return sorted(records, key=_SORT_KEYS[field], reverse=(direction == 'desc'))


def filter_parties(parties, term):
    term = (term or '').strip()
    if not term:
        return list(parties)
    lowered = term.lower()
    return [
        p for p in parties
        if (p.display_id and term in p.display_id)
        or lowered in p.name.lower()
        or (p.phone and term in p.phone)
        or lowered in (p.address or '').lower()
    ]


def total_sales(records):
    return sum(q.total_amount for q in records)


def recent_quotations(records, limit=5):
    return sort_quotations(records, 'date', 'desc')[:limit]


def quotations_for_party(records, party_id):
    return [q for q in records if q.party_id == party_id]
