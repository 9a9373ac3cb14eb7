"""Key-value persistence used by the stock store and the draft autosave."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Dict, Optional, Protocol

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class StorageKeys:
    """Fixed keys written by the stock engine."""

    STOCK = "stock"
    CURRENCY_RATE = "currencyRate"
    DRAFT = "stockDraft"
    # Nothing writes this any more; clear_all still erases it.
    FREIGHT_RATE = "freightRate"

    ALL = (STOCK, CURRENCY_RATE, DRAFT, FREIGHT_RATE)


class KeyValueStore(Protocol):
    """Synchronous text blob storage addressed by key."""

    def read_text(self, key: str) -> Optional[str]:
        ...

    def write_text(self, key: str, text: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


@dataclass
class MemoryKeyValueStore:
    """Volatile store kept in a dict."""

    data: Dict[str, str] = field(default_factory=dict)

    def read_text(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write_text(self, key: str, text: str) -> None:
        self.data[key] = text

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


def _key_filename(key: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9_.-]+", "-", key.strip())
    normalized = normalized.strip("-.")
    if not normalized:
        raise ValueError(f"Invalid storage key {key!r}")
    return f"{normalized}.json"


@dataclass
class FileKeyValueStore:
    """Stores each key as ``<key>.json`` inside ``directory``."""

    directory: Path
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.directory / _key_filename(key)

    def read_text(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        with self._lock:
            if not path.exists():
                return None
            logger.debug("Reading %s", path)
            return path.read_text(encoding="utf-8")

    def write_text(self, key: str, text: str) -> None:
        path = self.path_for(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(path)
            logger.debug("Wrote %d characters to %s", len(text), path)

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        with self._lock:
            path.unlink(missing_ok=True)


def build_key_value_store(settings: "Settings") -> KeyValueStore:
    """Create the backend selected by ``settings.storage_backend``."""

    backend = settings.storage_backend
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "sqlite":
        from .database import SqlKeyValueStore

        return SqlKeyValueStore.from_url(settings.database_url)
    return FileKeyValueStore(settings.storage_dir)


__all__ = [
    "StorageKeys",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "build_key_value_store",
]
