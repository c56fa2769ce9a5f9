from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from errors import UnknownError


def parse_date(value):
    """Read a backend date (ISO date or timestamp string) into a ``date``."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise UnknownError(f"Unexpected date value from server: {value!r}", original=e) from e


def _number(value, default=0.0):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class QuotationStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    EXPIRED = 'expired'


@dataclass
class BusinessDetails:
    name: str = ''
    address: str = ''
    phone: str = ''
    email: str = ''
    gstin: str = ''
    logo: str = ''

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data, defaults=None):
        # Blank fields fall back to the defaults, as the saved snapshot may be partial
        merged = dict(defaults or {})
        for key, value in (data or {}).items():
            if key in cls.__dataclass_fields__ and value:
                merged[key] = value
        return cls(**{k: v for k, v in merged.items() if k in cls.__dataclass_fields__})


@dataclass
class Party:
    id: str
    name: str
    display_id: Optional[str] = None
    phone: str = ''
    address: str = ''

    def to_dict(self):
        return {
            '_id': self.id,
            'partyId': self.display_id,
            'name': self.name,
            'phone': self.phone,
            'address': self.address,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise UnknownError(f"Unexpected party record from server: {data!r}")
        party_id = data.get('_id') or data.get('id')
        if not party_id:
            raise UnknownError("Party record from server has no id")
        display_id = data.get('partyId')
        return cls(
            id=str(party_id),
            name=data.get('name') or '',
            display_id=str(display_id) if display_id is not None else None,
            phone=data.get('phone') or '',
            address=data.get('address') or '',
        )


@dataclass
class LineItem:
    id: str
    category: str
    brand: str
    model: str
    hsn_sac: str = ''
    warranty: str = ''
    quantity: int = 1
    purchase_incl_tax: float = 0.0
    sale_incl_tax: float = 0.0
    tax_rate_percent: float = 18.0

    def to_payload(self):
        """Backend item shape; the local id stays on the client."""
        return {
            'category': self.category.strip(),
            'brand': self.brand.strip(),
            'model': self.model.strip(),
            'hsn_sac': self.hsn_sac.strip(),
            'warranty': self.warranty.strip(),
            'quantity': self.quantity,
            'purchase_with_gst': self.purchase_incl_tax,
            'sale_with_gst': self.sale_incl_tax,
            'gst_percentage': self.tax_rate_percent,
        }

    def to_dict(self):
        return asdict(self)


def candidate_from_payload(data):
    """Turn a backend item dict into the keyword arguments LineItemStore.add takes."""
    hsn = data.get('hsn_sac') or data.get('HSN/SAC') or ''
    candidate = {
        'category': data.get('category') or '',
        'brand': data.get('brand') or '',
        'model': data.get('model') or '',
        'hsn_sac': str(hsn),
        'warranty': data.get('warranty') or '',
        'quantity': int(_number(data.get('quantity'), 1)) or 1,
        'purchase_incl_tax': _number(data.get('purchase_with_gst')),
        'sale_incl_tax': _number(data.get('sale_with_gst')),
    }
    if data.get('gst_percentage') is not None:
        candidate['tax_rate_percent'] = _number(data['gst_percentage'], None)
    return candidate


@dataclass
class SavedQuotationRecord:
    id: str
    title: str = ''
    quotation_number: str = ''
    date: Optional[date] = None
    valid_until: Optional[date] = None
    status: QuotationStatus = QuotationStatus.DRAFT
    total_amount: float = 0.0
    revision_number: Optional[int] = None
    revision_of_id: Optional[str] = None
    party_id: Optional[str] = None
    party: Optional[Party] = None
    items: List[dict] = field(default_factory=list)
    business_details: dict = field(default_factory=dict)
    notes: str = ''
    terms: str = ''

    @property
    def party_name(self):
        return self.party.name if self.party else ''

    def to_dict(self):
        return {
            '_id': self.id,
            'title': self.title,
            'quotation_number': self.quotation_number,
            'date': self.date.isoformat() if self.date else None,
            'valid_until': self.valid_until.isoformat() if self.valid_until else None,
            'status': self.status.value,
            'total_amount': self.total_amount,
            'revision_number': self.revision_number,
            'revision_of': self.revision_of_id,
            'party_id': self.party_id,
            'party': self.party.to_dict() if self.party else None,
            'items': self.items,
            'business_details': self.business_details,
            'notes': self.notes,
            'terms_conditions': self.terms,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise UnknownError(f"Unexpected quotation record from server: {type(data).__name__}")
        record_id = data.get('_id') or data.get('id')
        if not record_id:
            raise UnknownError("Quotation record from server has no id")

        raw_status = data.get('status') or QuotationStatus.DRAFT.value
        try:
            status = QuotationStatus(raw_status)
        except ValueError as e:
            raise UnknownError(f"Unknown quotation status: {raw_status!r}", original=e) from e

        # The party arrives either populated or as a bare reference
        party = None
        party_ref = data.get('party')
        if isinstance(party_ref, dict):
            party = Party.from_dict(party_ref)
            party_id = party.id
        else:
            party_id = party_ref or data.get('party_id')

        revision_number = data.get('revision_number')
        items = data.get('items') or []
        if not isinstance(items, list):
            raise UnknownError("Quotation items from server are not a list")

        return cls(
            id=str(record_id),
            title=data.get('title') or '',
            quotation_number=data.get('quotation_number') or '',
            date=parse_date(data.get('date')),
            valid_until=parse_date(data.get('valid_until')),
            status=status,
            total_amount=_number(data.get('total_amount')),
            revision_number=int(revision_number) if revision_number is not None else None,
            revision_of_id=data.get('revision_of'),
            party_id=str(party_id) if party_id else None,
            party=party,
            items=items,
            business_details=data.get('business_details') or {},
            notes=data.get('notes') or '',
            terms=data.get('terms_conditions') or '',
        )


@dataclass
class CatalogModel:
    model: str
    hsn_sac: str = ''
    warranty: str = ''
    purchase_incl_tax: float = 0.0
    sale_incl_tax: float = 0.0


@dataclass
class CatalogEntry:
    category: str
    brand: str
    models: List[CatalogModel] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        """Raises ValueError when the entry does not have the catalog shape."""
        if not isinstance(data, dict):
            raise ValueError("catalog entry is not an object")
        category = data.get('category')
        brand = data.get('brand')
        models = data.get('models')
        if not isinstance(category, str) or not isinstance(brand, str) or not isinstance(models, list):
            raise ValueError(f"catalog entry missing category/brand/models: {data!r}")

        parsed = []
        for m in models:
            if not isinstance(m, dict) or not isinstance(m.get('model'), str):
                raise ValueError(f"catalog model malformed under {category}/{brand}")
            parsed.append(CatalogModel(
                model=m['model'],
                hsn_sac=str(m.get('HSN/SAC') or m.get('hsn_sac') or ''),
                warranty=m.get('warranty') or '',
                purchase_incl_tax=float(m.get('purchase_with_GST', m.get('purchase_with_gst', 0))),
                sale_incl_tax=float(m.get('sale_with_GST', m.get('sale_with_gst', 0))),
            ))
        return cls(category=category, brand=brand, models=parsed)
