"""Categorized stock catalog with merge-on-add and write-through persistence."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from threading import RLock
from typing import Any, Dict, Iterator, List, Literal, Optional, Set

from .csv_codec import ImportBatch
from .currency import from_primary, validate_rate
from .drafts import Draft
from .errors import ParseError, ValidationError
from .models import (
    CATEGORIES,
    Category,
    Number,
    StockItem,
    generate_item_id,
    normalize_name,
    tidy_number,
)
from .seed import seed_catalog
from .storage import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)

Catalog = Dict[Category, List[StockItem]]

DEFAULT_CURRENCY_RATE = 130.0


def _empty_catalog() -> Catalog:
    return {category: [] for category in CATEGORIES}


@dataclass(frozen=True)
class AddResult:
    """Outcome of :meth:`InventoryStore.add_or_merge`."""

    outcome: Literal["created", "merged"]
    item: StockItem

    @property
    def merged(self) -> bool:
        return self.outcome == "merged"


@dataclass
class InventoryStore:
    """Owns the three category buckets and the Ksh/USD rate.

    Every mutation writes the whole catalog back to ``kv`` before returning.
    Call :meth:`initialize` once before use.
    """

    kv: KeyValueStore
    default_currency_rate: float = DEFAULT_CURRENCY_RATE
    _catalog: Catalog = field(default_factory=_empty_catalog, init=False, repr=False)
    _currency_rate: float = field(default=DEFAULT_CURRENCY_RATE, init=False, repr=False)
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.default_currency_rate = validate_rate(self.default_currency_rate)
        self._currency_rate = self.default_currency_rate

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> "InventoryStore":
        with self._lock:
            catalog = self._load_catalog_locked()
            if catalog is None:
                logger.info("No usable stock catalog found, seeding defaults")
                self._catalog = seed_catalog()
                self._write_catalog_locked()
            else:
                self._catalog = catalog
            self._currency_rate = self._load_rate_locked()
        return self

    def clear_all(self) -> None:
        """Empty every bucket and erase the persisted catalog, rate and draft."""

        with self._lock:
            self._catalog = _empty_catalog()
            for key in StorageKeys.ALL:
                self.kv.remove(key)
            self._currency_rate = self.default_currency_rate
            logger.info("Cleared all stock data")

    def load_sample(self) -> None:
        """Replace the catalog with the starter data."""

        with self._lock:
            self._catalog = seed_catalog()
            self._write_catalog_locked()
            logger.info("Loaded sample catalog")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def catalog(self) -> Catalog:
        with self._lock:
            return {category: list(items) for category, items in self._catalog.items()}

    def items(self, category: Category) -> List[StockItem]:
        with self._lock:
            return list(self._catalog[category])

    def __iter__(self) -> Iterator[StockItem]:
        with self._lock:
            snapshot = [item for category in CATEGORIES for item in self._catalog[category]]
        return iter(snapshot)

    def get(self, category: Category, item_id: str) -> Optional[StockItem]:
        with self._lock:
            for item in self._catalog[category]:
                if item.id == item_id:
                    return item
        return None

    def search(self, category: Category, query: str = "") -> List[StockItem]:
        needle = query.strip().lower()
        return [item for item in self.items(category) if needle in item.name.lower()]

    def low_stock_items(self) -> List[StockItem]:
        return [item for item in self if item.is_low_stock]

    def total_value(self) -> Number:
        return tidy_number(sum(item.price_ksh * item.quantity for item in self))

    def all_ids(self) -> Set[str]:
        return {item.id for item in self}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_or_merge(self, category: Category, draft: Draft) -> AddResult:
        """Add a line from the form, or fold it into a same-named line.

        Names match case-insensitively after trimming. On a merge the quantity
        is added, prices are replaced only by non-zero values, and the
        description only when descriptions are shown and one was typed.
        """

        name = draft.name.strip()
        if not name:
            raise ValidationError("Please enter a name.")
        if draft.quantity < 0:
            raise ValidationError("Quantity cannot be negative.")
        description = draft.description.strip() if draft.show_descriptions else ""
        with self._lock:
            bucket = self._catalog[category]
            key = normalize_name(name)
            for index, existing in enumerate(bucket):
                if existing.normalized_name != key:
                    continue
                merged = replace(
                    existing,
                    quantity=tidy_number(existing.quantity + draft.quantity),
                    price_ksh=draft.price_ksh or existing.price_ksh,
                    price_usd=draft.price_usd or existing.price_usd,
                    description=description or existing.description,
                )
                bucket[index] = merged
                self._write_catalog_locked()
                logger.info("Merged %s into %s (%s)", draft.quantity, merged.id, category)
                return AddResult("merged", merged)
            created = StockItem(
                id=generate_item_id(category, self.all_ids()),
                name=name,
                category=category,
                quantity=draft.quantity,
                price_ksh=draft.price_ksh,
                price_usd=draft.price_usd,
                description=description or None,
            )
            bucket.append(created)
            self._write_catalog_locked()
            logger.info("Created %s in %s", created.id, category)
            return AddResult("created", created)

    def update(self, item: StockItem) -> Optional[StockItem]:
        """Replace the item with the same id in ``item.category``'s bucket.

        Unknown ids are ignored. Renaming onto another item's name is not
        merged.
        """

        with self._lock:
            bucket = self._catalog[item.category]
            for index, existing in enumerate(bucket):
                if existing.id == item.id:
                    bucket[index] = item
                    self._write_catalog_locked()
                    logger.info("Updated %s", item.id)
                    return item
        logger.debug("Update for unknown item %s ignored", item.id)
        return None

    def remove(self, category: Category, item_id: str) -> bool:
        with self._lock:
            bucket = self._catalog[category]
            remaining = [item for item in bucket if item.id != item_id]
            if len(remaining) == len(bucket):
                return False
            self._catalog[category] = remaining
            self._write_catalog_locked()
            logger.info("Removed %s from %s", item_id, category)
            return True

    def import_items(self, batch: ImportBatch) -> int:
        """Append decoded rows without merging. Returns the number appended."""

        if batch.is_empty:
            return 0
        with self._lock:
            taken = self.all_ids()
            for category in CATEGORIES:
                for item in batch.items[category]:
                    if item.quantity < 0:
                        item = replace(item, quantity=0)
                    if item.id in taken:
                        item = replace(item, id=generate_item_id(category, taken))
                    taken.add(item.id)
                    self._catalog[category].append(item)
            self._write_catalog_locked()
        logger.info("Imported %d items", batch.count)
        return batch.count

    # ------------------------------------------------------------------
    # Currency rate
    # ------------------------------------------------------------------
    @property
    def currency_rate(self) -> float:
        return self._currency_rate

    def set_currency_rate(self, rate: Any) -> float:
        parsed = validate_rate(rate)
        with self._lock:
            self._currency_rate = parsed
            self.kv.write_text(StorageKeys.CURRENCY_RATE, json.dumps(parsed))
        return parsed

    def price_usd_for(self, item: StockItem) -> Number:
        """USD price to show when editing ``item``, derived from Ksh if unset."""

        if item.price_usd is not None:
            return item.price_usd
        return tidy_number(from_primary(item.price_ksh, self._currency_rate))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _write_catalog_locked(self) -> None:
        payload = {
            category: [item.to_dict() for item in self._catalog[category]]
            for category in CATEGORIES
        }
        self.kv.write_text(StorageKeys.STOCK, json.dumps(payload, ensure_ascii=False))

    def _load_catalog_locked(self) -> Optional[Catalog]:
        raw = self.kv.read_text(StorageKeys.STOCK)
        if raw is None:
            return None
        try:
            return self._decode_catalog(raw)
        except ParseError as exc:
            logger.warning("Discarding unreadable stock catalog: %s", exc)
            return None

    @staticmethod
    def _decode_catalog(raw: str) -> Catalog:
        try:
            state = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Stock catalog is not valid JSON: {exc}") from exc
        if not isinstance(state, dict):
            raise ParseError("Stock catalog must be a JSON object")
        catalog = _empty_catalog()
        seen: Set[str] = set()
        for category in CATEGORIES:
            records = state.get(category)
            if not isinstance(records, list):
                continue
            for record in records:
                try:
                    item = StockItem.from_record(record, category, existing_ids=seen)
                except ParseError as exc:
                    logger.warning("Skipping stock record in %s: %s", category, exc)
                    continue
                seen.add(item.id)
                catalog[category].append(item)
        return catalog

    def _load_rate_locked(self) -> float:
        raw = self.kv.read_text(StorageKeys.CURRENCY_RATE)
        if raw is None:
            return self.default_currency_rate
        try:
            return validate_rate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning(
                "Invalid currency rate %r (%s), using default %s",
                raw,
                exc,
                self.default_currency_rate,
            )
            return self.default_currency_rate


__all__ = ["AddResult", "Catalog", "DEFAULT_CURRENCY_RATE", "InventoryStore"]
