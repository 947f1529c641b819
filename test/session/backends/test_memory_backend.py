from datetime import datetime, timedelta, timezone

import pytest

from session.backends import MemoryStore


def _in(**kwargs) -> datetime:
    return datetime.now(timezone.utc) + timedelta(**kwargs)


@pytest.mark.asyncio
async def test_memory_store_commit_and_find():
    store = MemoryStore()
    expiry = _in(hours=1)

    await store.commit("tok", b"data", expiry)
    record = await store.find("tok")

    assert record.data == b"data"
    assert record.expiry == expiry


@pytest.mark.asyncio
async def test_memory_store_find_missing():
    assert await MemoryStore().find("missing") is None


@pytest.mark.asyncio
async def test_memory_store_expired_record_is_not_returned():
    store = MemoryStore()
    await store.commit("tok", b"data", _in(seconds=-1))

    assert await store.find("tok") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_memory_store_delete_is_idempotent():
    store = MemoryStore()
    await store.commit("tok", b"data", _in(hours=1))

    await store.delete("tok")
    await store.delete("tok")

    assert await store.find("tok") is None


@pytest.mark.asyncio
async def test_memory_store_purge_expired():
    store = MemoryStore()
    await store.commit("old", b"data", _in(seconds=-1))
    await store.commit("new", b"data", _in(hours=1))

    assert store.purge_expired() == 1
    assert len(store) == 1
