"""SQLAlchemy-backed key-value store."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from sqlalchemy import Engine, String, Text, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if not database or database == ":memory:":
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


class SqlKeyValueStore:
    """Stores text blobs in the ``kv_entries`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> "SqlKeyValueStore":
        _ensure_sqlite_directory(url)
        return cls(create_engine(url, echo=echo))

    def read_text(self, key: str) -> Optional[str]:
        with self._sessions() as session:
            stmt = select(KeyValueEntry.value).where(KeyValueEntry.key == key)
            return session.execute(stmt).scalar_one_or_none()

    def write_text(self, key: str, text: str) -> None:
        with self._sessions.begin() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=text))
            else:
                entry.value = text

    def remove(self, key: str) -> None:
        with self._sessions.begin() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = ["Base", "KeyValueEntry", "SqlKeyValueStore"]
