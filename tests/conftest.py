"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from record_sync.storage.collection import RecordCollection
from record_sync.storage.memory_store import InMemoryKeyValueStore, SharedStorageArea
from record_sync.sync.protocol import SyncConfig
from record_sync.sync.transport import RemoteEndpoint


async def accept_item(item: dict[str, Any], config: SyncConfig) -> dict[str, Any]:
    return {"success": True}


async def accept_batch(items: list[dict[str, Any]], config: SyncConfig) -> dict[str, Any]:
    return {"results": [{"success": True, "item_id": item.get("id")} for item in items]}


@pytest.fixture
def area() -> SharedStorageArea:
    """Create a storage area shared by sibling contexts."""
    return SharedStorageArea()


@pytest.fixture
def kv_store(area: SharedStorageArea) -> InMemoryKeyValueStore:
    """Create a key/value store view for one context."""
    return area.view()


@pytest.fixture
def endpoint() -> AsyncMock:
    """Create a remote endpoint double that accepts every delivery."""
    mock = AsyncMock(spec=RemoteEndpoint)
    mock.send_item.side_effect = accept_item
    mock.send_batch.side_effect = accept_batch
    return mock


@pytest.fixture
def sync_config() -> SyncConfig:
    """Create an immediate-strategy sync configuration."""
    return SyncConfig(endpoint="https://api.example.com/orders", retry_delay=0.0)


@pytest_asyncio.fixture
async def collection(
    kv_store: InMemoryKeyValueStore, endpoint: AsyncMock
) -> AsyncGenerator[RecordCollection, None]:
    """Create a record collection over the in-memory store."""
    records = RecordCollection(kv_store, "orders", endpoint=endpoint)
    yield records
    await records.close()


@pytest.fixture
def sample_orders() -> list[dict[str, Any]]:
    """Create sample application records."""
    return [
        {"id": 1, "customer": "alice", "total": 10},
        {"id": 2, "customer": "bob", "total": 25},
        {"id": 3, "customer": "carol", "total": 7},
    ]
