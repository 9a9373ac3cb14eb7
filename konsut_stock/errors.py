"""Exception types raised by the stock engine."""
from __future__ import annotations


class StockError(Exception):
    """Base class for stock bookkeeping errors."""


class ValidationError(StockError, ValueError):
    """A required field is blank or a value is out of range.

    Raised before any mutation happens, so callers can report it as a
    user-facing warning without rolling anything back.
    """


class ParseError(StockError, ValueError):
    """A persisted blob could not be decoded into the expected shape."""


__all__ = ["StockError", "ValidationError", "ParseError"]
