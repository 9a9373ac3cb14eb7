"""Stock bookkeeping engine: categorized catalog, Ksh/USD sync and CSV backup."""
from __future__ import annotations

from .csv_codec import ImportBatch, decode_catalog, encode_catalog
from .drafts import Draft, DraftAutosave
from .errors import ParseError, StockError, ValidationError
from .inventory import AddResult, InventoryStore
from .models import StockItem

__all__ = [
    "create_app",
    "AddResult",
    "Draft",
    "DraftAutosave",
    "ImportBatch",
    "InventoryStore",
    "ParseError",
    "StockError",
    "StockItem",
    "ValidationError",
    "decode_catalog",
    "encode_catalog",
]


def create_app(*args, **kwargs):
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)
