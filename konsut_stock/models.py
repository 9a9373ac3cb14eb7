"""Typed records for stock line items."""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Collection, Dict, Literal, Optional, Tuple, Union, cast

from .errors import ParseError, ValidationError

logger = logging.getLogger(__name__)

Category = Literal["products", "mobilization", "services"]
Number = Union[int, float]

CATEGORIES: Tuple[Category, ...] = ("products", "mobilization", "services")
CATEGORY_PREFIXES: Dict[str, str] = {
    "products": "P",
    "mobilization": "M",
    "services": "S",
}
LOW_STOCK_THRESHOLD = 5

_ID_ATTEMPTS = 50


def parse_category(value: Any) -> Category:
    candidate = str(value or "").strip().lower()
    if candidate not in CATEGORIES:
        raise ValidationError(f"Unknown category '{value}'")
    return cast(Category, candidate)


def normalize_name(name: str) -> str:
    return name.strip().lower()


def tidy_number(value: float) -> Number:
    """Return ``value`` as an ``int`` when it has no fractional part."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def coerce_number(value: Any, default: Optional[Number] = 0) -> Optional[Number]:
    """Convert loose input (``"12"``, ``12.0``, ``None``) to a finite number."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip()
        if text == "":
            return default
        try:
            parsed = float(text)
        except ValueError:
            return default
    if not math.isfinite(parsed):
        return default
    return tidy_number(parsed)


def generate_item_id(
    category: str,
    existing_ids: Collection[str] = (),
    *,
    rng: Optional[random.Random] = None,
) -> str:
    """Return ``<prefix><4 digits>``, retrying when the id is already taken."""

    prefix = CATEGORY_PREFIXES.get(category, "I")
    source = rng or random
    candidate = ""
    for _ in range(_ID_ATTEMPTS):
        candidate = f"{prefix}{source.randint(1000, 9999)}"
        if candidate not in existing_ids:
            return candidate
    logger.warning("Could not find a free id for %s after %d attempts", category, _ID_ATTEMPTS)
    return candidate


@dataclass
class StockItem:
    """A single priced line in one category bucket."""

    id: str
    name: str
    category: Category
    quantity: Number = 0
    price_ksh: Number = 0
    price_usd: Optional[Number] = None
    description: Optional[str] = None

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def line_value(self) -> Number:
        return tidy_number(self.price_ksh * self.quantity)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < LOW_STOCK_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "priceKsh": self.price_ksh,
            "priceUSD": self.price_usd,
            "description": self.description,
        }

    @classmethod
    def from_record(
        cls,
        record: Any,
        category: Category,
        *,
        existing_ids: Collection[str] = (),
    ) -> "StockItem":
        """Rebuild an item from persisted JSON, defaulting malformed fields.

        The bucket the record was found in wins over its own ``category``
        field. Raises :class:`ParseError` when the record is not an object.
        """

        if not isinstance(record, dict):
            raise ParseError(f"Stock record must be an object, got {type(record).__name__}")
        item_id = str(record.get("id") or "").strip()
        if not item_id:
            item_id = generate_item_id(category, existing_ids)
        name = str(record.get("name") or "").strip() or "Unknown Item"
        quantity = coerce_number(record.get("quantity"), 0)
        if quantity is None or quantity < 0:
            quantity = 0
        price_ksh = coerce_number(record.get("priceKsh"), 0)
        price_usd = coerce_number(record.get("priceUSD"), None)
        raw_description = record.get("description")
        description = None if raw_description is None else str(raw_description)
        return cls(
            id=item_id,
            name=name,
            category=category,
            quantity=quantity,
            price_ksh=0 if price_ksh is None else price_ksh,
            price_usd=price_usd,
            description=description,
        )


__all__ = [
    "Category",
    "CATEGORIES",
    "CATEGORY_PREFIXES",
    "LOW_STOCK_THRESHOLD",
    "StockItem",
    "coerce_number",
    "generate_item_id",
    "normalize_name",
    "parse_category",
    "tidy_number",
]
