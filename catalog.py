"""PC component catalog.

``Catalog.load`` never fails: if the backend catalog cannot be fetched or has
the wrong shape, the bundled FALLBACK_COMPONENTS are used instead.
"""

import logging
import re
from dataclasses import dataclass

from errors import AppError
from models import CatalogEntry

logger = logging.getLogger(__name__)

FALLBACK_COMPONENTS = [
    {
        "category": "Processor",
        "brand": "Intel",
        "models": [
            {"model": "Core i5-12400F", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 16000, "sale_with_GST": 18500},
            {"model": "Core i7-12700K", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 28000, "sale_with_GST": 31500},
            {"model": "Core i9-13900K", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 50000, "sale_with_GST": 56500},
        ],
    },
    {
        "category": "Graphics Card",
        "brand": "NVIDIA",
        "models": [
            {"model": "RTX 3060", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 30000, "sale_with_GST": 34000},
            {"model": "RTX 4070", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 55000, "sale_with_GST": 61000},
            {"model": "RTX 4090", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 140000, "sale_with_GST": 152000},
        ],
    },
    {
        "category": "Motherboard",
        "brand": "ASUS",
        "models": [
            {"model": "ROG Strix B660-F", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 17500, "sale_with_GST": 19500},
            {"model": "TUF Gaming X670E", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 29500, "sale_with_GST": 32500},
            {"model": "PRIME Z790-P", "HSN/SAC": "84733099", "warranty": "3 Years",
             "purchase_with_GST": 21500, "sale_with_GST": 23800},
        ],
    },
    {
        "category": "RAM",
        "brand": "Corsair",
        "models": [
            {"model": "Vengeance LPX 16GB DDR4", "HSN/SAC": "84733092", "warranty": "10 Years",
             "purchase_with_GST": 4000, "sale_with_GST": 4600},
            {"model": "Vengeance RGB Pro 32GB DDR4", "HSN/SAC": "84733092", "warranty": "10 Years",
             "purchase_with_GST": 8200, "sale_with_GST": 9100},
            {"model": "Dominator Platinum RGB 32GB DDR5", "HSN/SAC": "84733092", "warranty": "10 Years",
             "purchase_with_GST": 15500, "sale_with_GST": 17200},
        ],
    },
    {
        "category": "SSD",
        "brand": "Samsung",
        "models": [
            {"model": "970 EVO Plus 500GB NVMe", "HSN/SAC": "84717020", "warranty": "5 Years",
             "purchase_with_GST": 3300, "sale_with_GST": 3900},
            {"model": "980 PRO 1TB NVMe", "HSN/SAC": "84717020", "warranty": "5 Years",
             "purchase_with_GST": 7500, "sale_with_GST": 8500},
            {"model": "990 PRO 2TB NVMe", "HSN/SAC": "84717020", "warranty": "5 Years",
             "purchase_with_GST": 15800, "sale_with_GST": 17400},
        ],
    },
    {
        "category": "Power Supply",
        "brand": "Cooler Master",
        "models": [
            {"model": "MWE 550 Bronze V2", "HSN/SAC": "85044010", "warranty": "5 Years",
             "purchase_with_GST": 3300, "sale_with_GST": 3800},
            {"model": "MWE 750 White V2", "HSN/SAC": "85044010", "warranty": "5 Years",
             "purchase_with_GST": 4300, "sale_with_GST": 4900},
            {"model": "V850 Gold V2 Full Modular", "HSN/SAC": "85044010", "warranty": "10 Years",
             "purchase_with_GST": 9900, "sale_with_GST": 10800},
        ],
    },
    {
        "category": "Cabinet",
        "brand": "NZXT",
        "models": [
            {"model": "H510", "HSN/SAC": "84733099", "warranty": "2 Years",
             "purchase_with_GST": 5200, "sale_with_GST": 5900},
            {"model": "H7 Flow RGB", "HSN/SAC": "84733099", "warranty": "2 Years",
             "purchase_with_GST": 8800, "sale_with_GST": 9800},
            {"model": "H9 Elite", "HSN/SAC": "84733099", "warranty": "2 Years",
             "purchase_with_GST": 13200, "sale_with_GST": 14500},
        ],
    },
]

# Match scores, most specific first
MODEL_EXACT = 100
MODEL_SUBSTRING = 80
MODEL_DIGITS_SUFFIX = 70
BRAND_EXACT = 60
BRAND_SUBSTRING = 50
CATEGORY_EXACT = 40
CATEGORY_SUBSTRING = 30
TAX_CODE = 20
WARRANTY_SUBSTRING = 10
CATEGORY_BRAND_COMPOUND = 5

_DIGITS_TERM = re.compile(r'^\d{2,4}$')


@dataclass(frozen=True)
class SearchFlags:
    """Which fields a catalog search looks at."""
    category: bool = True
    brand: bool = True
    model: bool = True
    tax_code: bool = True
    warranty: bool = True
    exact_only: bool = False


@dataclass(frozen=True)
class CatalogMatch:
    score: int
    entry: CatalogEntry
    model: object  # CatalogModel


def fallback_entries():
    return [CatalogEntry.from_dict(entry) for entry in FALLBACK_COMPONENTS]


def parse_components(data):
    """Read a ``{"PC_Components": [...]}`` document; ValueError if the shape is wrong."""
    if not isinstance(data, dict) or not isinstance(data.get('PC_Components'), list):
        raise ValueError("components response has no PC_Components list")
    if not data['PC_Components']:
        raise ValueError("components response is empty")
    return [CatalogEntry.from_dict(entry) for entry in data['PC_Components']]


def _score(entry, model, term, flags):
    category = entry.category.lower()
    brand = entry.brand.lower()
    name = model.model.lower()
    best = 0

    def consider(score):
        nonlocal best
        best = max(best, score)

    if flags.model:
        if name == term:
            consider(MODEL_EXACT)
        elif not flags.exact_only and term in name:
            consider(MODEL_SUBSTRING)
        if not flags.exact_only and _DIGITS_TERM.match(term):
            digits = ''.join(re.findall(r'\d', name))
            if digits.endswith(term):
                consider(MODEL_DIGITS_SUFFIX)
    if flags.brand:
        if brand == term:
            consider(BRAND_EXACT)
        elif not flags.exact_only and term in brand:
            consider(BRAND_SUBSTRING)
    if flags.category:
        if category == term:
            consider(CATEGORY_EXACT)
        elif not flags.exact_only and term in category:
            consider(CATEGORY_SUBSTRING)
    if flags.tax_code and model.hsn_sac:
        code = model.hsn_sac.lower()
        if code == term or (not flags.exact_only and code.startswith(term)):
            consider(TAX_CODE)
    if flags.warranty and not flags.exact_only and term in model.warranty.lower():
        consider(WARRANTY_SUBSTRING)

    # "processor-intel" style queries
    if '-' in term and flags.category and flags.brand:
        left, _, right = term.partition('-')
        left, right = left.strip(), right.strip()
        if left and right and left in category and right in brand:
            consider(CATEGORY_BRAND_COMPOUND)
    return best


def search(entries, term, flags=None):
    """Rank catalog models against ``term``; highest score first, stable on ties."""
    flags = flags or SearchFlags()
    term = (term or '').strip().lower()
    if not term:
        return []
    matches = []
    for entry in entries:
        for model in entry.models:
            score = _score(entry, model, term, flags)
            if score > 0:
                matches.append(CatalogMatch(score=score, entry=entry, model=model))
    return sorted(matches, key=lambda m: m.score, reverse=True)


class Catalog:
    """Catalog entries fetched once per instance."""

    def __init__(self, client):
        self.client = client
        self._entries = None
        self.from_fallback = False

    def load(self, refresh=False):
        if self._entries is not None and not refresh:
            return self._entries
        try:
            entries = parse_components(self.client.get('/components'))
            self.from_fallback = False
            logger.info(f"Loaded {len(entries)} catalog entries from server")
        except (AppError, ValueError, TypeError) as e:
            logger.warning(f"Component catalog unavailable ({e}); using bundled catalog")
            entries = fallback_entries()
            self.from_fallback = True
        self._entries = entries
        return entries

    def categories(self):
        seen = []
        for entry in self.load():
            if entry.category not in seen:
                seen.append(entry.category)
        return seen

    def by_category(self, category):
        return [entry for entry in self.load() if entry.category == category]

    def find(self, category, brand, model):
        for entry in self.load():
            if entry.category == category and entry.brand == brand:
                for m in entry.models:
                    if m.model == model:
                        return entry, m
        return None

    def search(self, term, flags=None):
        return search(self.load(), term, flags)

    @staticmethod
    def to_line_item_candidate(entry, model, quantity=1):
        """Keyword arguments for LineItemStore.add; the store fills in the tax rate."""
        return {
            'category': entry.category,
            'brand': entry.brand,
            'model': model.model,
            'hsn_sac': model.hsn_sac,
            'warranty': model.warranty,
            'quantity': quantity,
            'purchase_incl_tax': model.purchase_incl_tax,
            'sale_incl_tax': model.sale_incl_tax,
        }
