import asyncio

import pytest

from models.document import SERVER_TIMESTAMP, WriteOp
from services.memory_store import MemoryDocumentStore
from utils.exceptions import NotFound


def test_create_assigns_id_and_resolves_timestamps(store):
    doc_id = store.create("office", {"name": "pen", "createdAt": SERVER_TIMESTAMP})

    document = store.get("office", doc_id)
    assert document.data["name"] == "pen"
    assert isinstance(document.data["createdAt"], str)


def test_update_missing_document_raises_not_found(store):
    with pytest.raises(NotFound):
        store.update("office", "missing", {"name": "x"})


def test_set_merge_and_replace(store):
    store.set("users", "u1", {"email": "a@example.com", "role": "viewer"})
    store.set("users", "u1", {"role": "admin"}, merge=True)
    assert store.get("users", "u1").data == {"email": "a@example.com", "role": "admin"}

    store.set("users", "u1", {"role": "viewer"})
    assert store.get("users", "u1").data == {"role": "viewer"}


def test_batch_write_is_all_or_nothing(store):
    store.set("users", "u1", {"role": "viewer"})

    with pytest.raises(NotFound):
        store.batch_write(
            [
                WriteOp.set("roles", "u1", {"role": "admin"}),
                WriteOp.update("users", "missing", {"role": "admin"}),
            ]
        )

    assert store.get("roles", "u1") is None
    assert store.get("users", "u1").data == {"role": "viewer"}


def test_query_orders_by_field(store):
    store.set("office", "a", {"createdAt": "2026-01-01"})
    store.set("office", "b", {"createdAt": "2026-01-03"})
    store.set("office", "c", {"createdAt": "2026-01-02"})

    assert [d.id for d in store.query("office", "createdAt", descending=True)] == ["b", "c", "a"]


def test_subscription_receives_snapshot_after_each_write():
    async def scenario():
        store = MemoryDocumentStore()
        subscription = store.subscribe("office")
        first = await subscription.__anext__()
        store.create("office", {"name": "pen", "createdAt": SERVER_TIMESTAMP})
        second = await subscription.__anext__()
        subscription.close()
        return first, second, subscription

    first, second, subscription = asyncio.run(scenario())

    assert len(first.snapshot) == 0
    assert len(second.snapshot) == 1
    assert second.snapshot.documents[0].data["name"] == "pen"
    assert subscription.closed


def test_closed_subscription_stops_iteration():
    async def scenario():
        store = MemoryDocumentStore()
        subscription = store.subscribe("office")
        subscription.close()
        store.create("office", {"name": "pen"})
        return [event async for event in subscription]

    assert asyncio.run(scenario()) == []
