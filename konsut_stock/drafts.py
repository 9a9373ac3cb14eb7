"""Autosave of the uncommitted add-item form."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from .currency import from_primary, from_secondary
from .errors import ParseError
from .models import CATEGORIES, Category, Number, coerce_number, tidy_number
from .storage import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Draft:
    """Snapshot of the add-item form fields."""

    name: str = ""
    quantity: Number = 1
    price_ksh: Number = 0
    price_usd: Number = 0
    description: str = ""
    active_category: Category = "products"
    show_descriptions: bool = True

    def with_price_ksh(self, value: Number, rate: float) -> "Draft":
        """Set the Ksh price and recompute USD from it."""

        return replace(self, price_ksh=value, price_usd=tidy_number(from_primary(value, rate)))

    def with_price_usd(self, value: Number, rate: float) -> "Draft":
        """Set the USD price and recompute Ksh from it."""

        return replace(self, price_usd=value, price_ksh=tidy_number(from_secondary(value, rate)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Any) -> "Draft":
        if not isinstance(record, dict):
            raise ParseError("Draft must be a JSON object")
        defaults = cls()
        name = record.get("name")
        description = record.get("description")
        category = record.get("active_category")
        show_descriptions = record.get("show_descriptions")
        quantity = coerce_number(record.get("quantity"), defaults.quantity)
        price_ksh = coerce_number(record.get("price_ksh"), defaults.price_ksh)
        price_usd = coerce_number(record.get("price_usd"), defaults.price_usd)
        return cls(
            name=name if isinstance(name, str) else defaults.name,
            quantity=defaults.quantity if quantity is None else quantity,
            price_ksh=defaults.price_ksh if price_ksh is None else price_ksh,
            price_usd=defaults.price_usd if price_usd is None else price_usd,
            description=description if isinstance(description, str) else defaults.description,
            active_category=category if category in CATEGORIES else defaults.active_category,
            show_descriptions=(
                show_descriptions
                if isinstance(show_descriptions, bool)
                else defaults.show_descriptions
            ),
        )


class DraftAutosave:
    """Writes the whole draft under its own key on every form change."""

    def __init__(self, kv: KeyValueStore, key: str = StorageKeys.DRAFT) -> None:
        self.kv = kv
        self.key = key

    def save(self, draft: Draft) -> None:
        self.kv.write_text(self.key, json.dumps(draft.to_dict(), ensure_ascii=False))

    def load(self) -> Draft:
        raw = self.kv.read_text(self.key)
        if raw is None:
            return Draft()
        try:
            return Draft.from_record(json.loads(raw))
        except (json.JSONDecodeError, ParseError) as exc:
            logger.warning("Ignoring unreadable draft: %s", exc)
            return Draft()

    def reset(self, current: Optional[Draft] = None) -> Draft:
        """Blank the form fields, keeping the active tab and toggle of ``current``."""

        if current is None:
            draft = Draft()
        else:
            draft = Draft(
                active_category=current.active_category,
                show_descriptions=current.show_descriptions,
            )
        self.save(draft)
        return draft


__all__ = ["Draft", "DraftAutosave"]
