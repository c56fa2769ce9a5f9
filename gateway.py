"""Saving, loading and listing quotations and parties on the backend.

Revision titles are ``"{base}"`` for revision 0 and ``"{base} ({n})"`` after
that. The next number is derived from the party's quotation list, which is
re-fetched right before numbering; the backend response decides the final
identity of what was saved.
"""

import logging
import re
import threading
from concurrent.futures import Future

from errors import UnknownError, ValidationError
from models import Party, SavedQuotationRecord

logger = logging.getLogger(__name__)

_SUFFIX = re.compile(r'^(?P<base>.*?) \((?P<n>\d+)\)$')


def default_title(party):
    return f"Quotation for {party.name}"


def next_revision_number(titles, base_title):
    """0 if the base title is unused, else one past the highest ``(n)`` suffix."""
    pattern = re.compile(rf'^{re.escape(base_title)} \((\d+)\)$')
    bare_match = False
    numbers = []
    for title in titles:
        if title == base_title:
            bare_match = True
            continue
        m = pattern.match(title or '')
        if m:
            numbers.append(int(m.group(1)))
    if numbers:
        return max(numbers) + 1
    return 1 if bare_match else 0


def revision_title(base_title, number):
    return f"{base_title} ({number})" if number > 0 else base_title


def base_title_of(title):
    """Strip a trailing ``(n)`` revision suffix."""
    m = _SUFFIX.match(title or '')
    return m.group('base') if m else (title or '')


def _records(data):
    if not isinstance(data, list):
        raise UnknownError("Unexpected quotation list from server")
    return [SavedQuotationRecord.from_dict(item) for item in data]


class PersistenceGateway:
    def __init__(self, client):
        self.client = client
        self._lock = threading.Lock()
        self._in_flight = {}
        self._party_quotations = {}
        self._all_quotations = None

    def _once(self, key, fetch):
        """Run ``fetch`` unless the same key is already in flight; then share its outcome."""
        with self._lock:
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future
        if not owner:
            logger.info(f"Skipping duplicate request for {key}")
            return future.result()

        try:
            result = fetch()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    # -- quotations ----------------------------------------------------------

    def list_for_party(self, party_id, refresh=False):
        if not refresh and party_id in self._party_quotations:
            return list(self._party_quotations[party_id])

        def fetch():
            logger.info(f"Fetching quotations for party ID: {party_id}")
            records = _records(self.client.get(f'/quotations/party/{party_id}'))
            self._party_quotations[party_id] = records
            logger.info(f"Retrieved {len(records)} quotations for party {party_id}")
            return records

        return list(self._once(('party-quotations', party_id), fetch))

    def list_all(self, refresh=False):
        if not refresh and self._all_quotations is not None:
            return list(self._all_quotations)

        def fetch():
            records = _records(self.client.get('/quotations'))
            self._all_quotations = records
            logger.info(f"Retrieved {len(records)} total quotations")
            return records

        return list(self._once(('all-quotations',), fetch))

    def get(self, quotation_id):
        data = self._once(('quotation', quotation_id),
                          lambda: self.client.get(f'/quotations/{quotation_id}'))
        return SavedQuotationRecord.from_dict(data)

    def list_revisions(self, quotation_id):
        return _records(self.client.get(f'/quotations/{quotation_id}/revisions'))

    def load(self, quotation_id, session):
        """Fetch a quotation and rebuild ``session`` from it."""
        record = self.get(quotation_id)
        party = record.party
        if party is None and record.party_id:
            party = self.get_party(record.party_id)
        session.hydrate(record, party=party)
        return record

    def save(self, session, base_title=None, create_revision=False, source_quotation_id=None):
        problems = session.validation_problems()
        if problems:
            raise ValidationError("Cannot save quotation: " + "; ".join(problems), problems=problems)

        party = session.selected_party
        totals = session.compute_totals()
        base = base_title or default_title(party)
        title = base
        revision_number = None
        revision_of = source_quotation_id or session.revision_of_id

        if create_revision or session.is_revision:
            existing = self.list_for_party(party.id, refresh=True)
            revision_number = next_revision_number([q.title for q in existing], base)
            title = revision_title(base, revision_number)

        payload = session.to_payload(title, totals)
        if revision_number is not None:
            payload['revision_number'] = revision_number
            if revision_of:
                payload['revision_of'] = revision_of

        path = f'/quotations/{revision_of}/revisions' if revision_number is not None and revision_of \
            else '/quotations'
        logger.info(f"Saving quotation '{title}' for party {party.id} ({len(payload['items'])} items)")
        record = SavedQuotationRecord.from_dict(self.client.post(path, payload))

        session.mark_saved(record)
        self._remember(party.id, record)
        return record

    def create_revision(self, quotation_id, session):
        loaded = self.load(quotation_id, session)
        return self.save(
            session,
            base_title=base_title_of(loaded.title) or None,
            create_revision=True,
            source_quotation_id=quotation_id,
        )

    def _remember(self, party_id, record):
        if party_id in self._party_quotations:
            self._party_quotations[party_id].insert(0, record)
        if self._all_quotations is not None:
            self._all_quotations.insert(0, record)

    # -- parties -------------------------------------------------------------

    def list_parties(self):
        data = self.client.get('/parties')
        if not isinstance(data, list):
            raise UnknownError("Unexpected party list from server")
        return [Party.from_dict(item) for item in data]

    def get_party(self, party_id):
        data = self._once(('party', party_id), lambda: self.client.get(f'/parties/{party_id}'))
        return Party.from_dict(data)

    def create_party(self, name, phone, address=''):
        _check_party(name, phone)
        data = self.client.post('/parties', {'name': name.strip(), 'phone': phone.strip(),
                                             'address': (address or '').strip()})
        party = Party.from_dict(data)
        logger.info(f"Party added: {party.name} ({party.id})")
        return party

    def update_party(self, party):
        _check_party(party.name, party.phone)
        data = self.client.put(f'/parties/{party.id}', party.to_dict())
        return Party.from_dict(data) if data else party

    def delete_party(self, party_id):
        self.client.delete(f'/parties/{party_id}')
        self._party_quotations.pop(party_id, None)
        logger.info(f"Party deleted: {party_id}")


def _check_party(name, phone):
    problems = []
    if not (name or '').strip():
        problems.append("Party name is required")
    if not (phone or '').strip():
        problems.append("Party phone is required")
    if problems:
        raise ValidationError("; ".join(problems), problems=problems)
