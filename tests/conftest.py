from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from konsut_stock.config import Settings
from konsut_stock.inventory import InventoryStore
from konsut_stock.storage import MemoryKeyValueStore


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(kv: MemoryKeyValueStore) -> InventoryStore:
    return InventoryStore(kv).initialize()


@pytest.fixture()
def empty_store(kv: MemoryKeyValueStore) -> InventoryStore:
    store = InventoryStore(kv).initialize()
    store.clear_all()
    return store


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        environment="test",
        storage_backend="file",
        storage_dir=tmp_path / "data",
        secret_key="test-secret",
        admin_username="admin",
        admin_password="admin",
        user_username="staff",
        user_password="staff",
    )


@pytest.fixture()
def client(settings: Settings) -> Iterator:
    from konsut_stock.app import create_app

    app = create_app(settings)
    app.config.update(TESTING=True)
    with app.test_client() as client:
        yield client
