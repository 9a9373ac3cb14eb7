"""Flat CSV backup format for the stock catalog.

Export writes one header row followed by one row per item, bucket by bucket.
Import is deliberately forgiving: columns are read by position, short rows
get defaults, and the category column is classified by substring. Commas
inside quoted cells are not supported on import.
"""
from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from io import StringIO
from typing import Collection, Dict, List, Mapping, Optional, Sequence, Set

from .models import CATEGORIES, Category, StockItem, coerce_number, generate_item_id

logger = logging.getLogger(__name__)

CSV_HEADER = ("Category", "Name", "Quantity", "PriceKsh", "PriceUSD", "Description")
CSV_MIMETYPE = "text/csv"
UNKNOWN_ITEM_NAME = "Unknown Item"

_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


def export_filename(today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"konsut_stock_{stamp}.csv"


def encode_catalog(catalog: Mapping[str, Sequence[StockItem]]) -> str:
    """Render the catalog as CSV text, products first, in insertion order."""

    buffer = StringIO()
    buffer.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for category in CATEGORIES:
        for item in catalog.get(category, ()):
            writer.writerow(
                [
                    category,
                    item.name,
                    item.quantity,
                    item.price_ksh,
                    0 if item.price_usd is None else item.price_usd,
                    item.description or "",
                ]
            )
    return buffer.getvalue().rstrip("\n")


def classify_category(value: str) -> Category:
    """Map free text to a bucket: ``mob`` -> mobilization, ``serv`` -> services."""

    lowered = value.lower()
    if "mob" in lowered:
        return "mobilization"
    if "serv" in lowered:
        return "services"
    return "products"


def _strip_quotes(cell: str) -> str:
    cell = cell.strip()
    if cell.startswith('"'):
        cell = cell[1:]
    if cell.endswith('"'):
        cell = cell[:-1]
    return cell


def _is_header(line: str) -> bool:
    return "name" in line.lower()


@dataclass
class ImportBatch:
    """Rows decoded from an uploaded CSV, grouped by bucket."""

    items: Dict[Category, List[StockItem]] = field(
        default_factory=lambda: {category: [] for category in CATEGORIES}
    )
    skipped: int = 0

    @property
    def count(self) -> int:
        return sum(len(bucket) for bucket in self.items.values())

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def all_items(self) -> List[StockItem]:
        return [item for category in CATEGORIES for item in self.items[category]]


def decode_row(cells: Sequence[str], *, item_id: str) -> StockItem:
    def cell(index: int) -> str:
        return cells[index] if index < len(cells) else ""

    category = classify_category(cell(0))
    quantity = coerce_number(cell(2), 1)
    if quantity is None:
        quantity = 1
    elif quantity < 0:
        quantity = 0
    price_ksh = coerce_number(cell(3), 0)
    price_usd = coerce_number(cell(4), 0)
    return StockItem(
        id=item_id,
        name=cell(1) or UNKNOWN_ITEM_NAME,
        category=category,
        quantity=quantity,
        price_ksh=0 if price_ksh is None else price_ksh,
        price_usd=0 if price_usd is None else price_usd,
        description=cell(5),
    )


def decode_catalog(text: str, existing_ids: Collection[str] = ()) -> ImportBatch:
    """Parse CSV text into brand-new items with fresh ids.

    The first line is treated as a header when it mentions "name". Blank lines
    are skipped and counted in :attr:`ImportBatch.skipped`.
    """

    batch = ImportBatch()
    lines = _LINE_SPLIT.split(text.lstrip("\ufeff"))
    if lines and _is_header(lines[0]):
        lines = lines[1:]
    taken: Set[str] = set(existing_ids)
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            batch.skipped += 1
            continue
        cells = [_strip_quotes(part) for part in line.split(",")]
        category = classify_category(cells[0])
        item = decode_row(cells, item_id=generate_item_id(category, taken))
        taken.add(item.id)
        batch.items[item.category].append(item)
    logger.info("Decoded %d CSV rows (%d blank lines skipped)", batch.count, batch.skipped)
    return batch


__all__ = [
    "CSV_HEADER",
    "CSV_MIMETYPE",
    "ImportBatch",
    "classify_category",
    "decode_catalog",
    "encode_catalog",
    "export_filename",
]
