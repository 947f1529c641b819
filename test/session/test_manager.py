from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request

from session import SessionConfig, SessionManager, Status
from session.backends import MemoryStore
from session.errors import CodecError, SessionError, StoreError
from session.manager import REMEMBER_ME_KEY


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def manager(store):
    return SessionManager(store=store)


async def _committed(manager, values) -> str:
    session = await manager.load("")
    session.update(values)
    token, _ = await manager.commit(session)
    return token


@pytest.mark.asyncio
async def test_load_without_token_gives_fresh_session(manager):
    session = await manager.load("")

    assert session.status is Status.UNMODIFIED
    assert session.token == ""
    assert session.deadline is None
    assert len(session) == 0


@pytest.mark.asyncio
async def test_load_unknown_token_is_not_adopted(manager):
    session = await manager.load("client-chosen-token")

    assert session.is_new
    assert session.status is Status.UNMODIFIED


@pytest.mark.asyncio
async def test_commit_then_load(manager, store):
    before = datetime.now(timezone.utc)
    session = await manager.load(None)
    session["k"] = "v"

    token, expiry = await manager.commit(session)

    assert token
    assert len(store) == 1
    assert before + timedelta(hours=24) <= expiry <= datetime.now(timezone.utc) + timedelta(hours=24)

    loaded = await manager.load(token)
    assert loaded["k"] == "v"
    assert loaded.token == token
    assert loaded.deadline == expiry
    assert loaded.status is Status.UNMODIFIED


@pytest.mark.asyncio
async def test_commit_keeps_existing_token_and_deadline(manager):
    token = await _committed(manager, {"k": "v"})
    session = await manager.load(token)
    deadline = session.deadline
    session["k"] = "w"

    new_token, expiry = await manager.commit(session)

    assert new_token == token
    assert expiry == deadline


@pytest.mark.asyncio
async def test_commit_only_once_per_request(manager):
    session = await manager.load("")
    session["k"] = "v"
    await manager.commit(session)

    with pytest.raises(SessionError):
        await manager.commit(session)


@pytest.mark.asyncio
async def test_idle_timeout_shortens_expiry_and_slides(store):
    config = SessionConfig(lifetime=timedelta(hours=24), idle_timeout=timedelta(minutes=20))
    manager = SessionManager(config=config, store=store)

    session = await manager.load("")
    session["k"] = "v"
    token, expiry = await manager.commit(session)

    assert expiry <= datetime.now(timezone.utc) + timedelta(minutes=20)
    assert session.deadline > expiry

    reloaded = await manager.load(token)
    assert reloaded.status is Status.MODIFIED


@pytest.mark.asyncio
async def test_destroy_removes_record(manager, store):
    token = await _committed(manager, {"k": "v"})
    session = await manager.load(token)

    await manager.destroy(session)
    await manager.destroy(session)

    assert session.status is Status.DESTROYED
    assert len(store) == 0
    assert (await manager.load(token)).is_new


@pytest.mark.asyncio
async def test_destroyed_session_cannot_be_committed(manager):
    session = await manager.load("")
    await manager.destroy(session)

    with pytest.raises(SessionError):
        await manager.commit(session)


@pytest.mark.asyncio
async def test_renew_token(manager, store):
    token = await _committed(manager, {"user": "ada"})
    session = await manager.load(token)

    await manager.renew_token(session)
    new_token, _ = await manager.commit(session)

    assert new_token != token
    assert (await manager.load(token)).is_new
    assert (await manager.load(new_token))["user"] == "ada"


@pytest.mark.asyncio
async def test_remember_me(store):
    manager = SessionManager(config=SessionConfig(cookie={"persist": False}), store=store)
    session = await manager.load("")

    assert manager.is_persistent(session) is False
    manager.remember_me(session, True)

    assert session[REMEMBER_ME_KEY] is True
    assert manager.is_persistent(session) is True
    assert session.status is Status.MODIFIED


@pytest.mark.asyncio
async def test_set_deadline(manager):
    session = await manager.load("")
    deadline = datetime.now(timezone.utc) + timedelta(minutes=5)
    manager.set_deadline(session, deadline)

    _, expiry = await manager.commit(session)

    assert expiry == deadline


@pytest.mark.asyncio
async def test_decode_failure_is_reported(manager, store):
    await store.commit("tok", b"corrupt", datetime.now(timezone.utc) + timedelta(hours=1))

    with pytest.raises(CodecError):
        await manager.load("tok")


@pytest.mark.asyncio
async def test_store_failure_on_load_propagates():
    store = AsyncMock()
    store.find.side_effect = StoreError("Database connection error during session read")
    manager = SessionManager(store=store)

    with pytest.raises(StoreError):
        await manager.load("tok")


@pytest.mark.asyncio
async def test_bind_and_get_session_per_manager():
    first = SessionManager(config=SessionConfig(cookie={"name": "first"}))
    second = SessionManager(config=SessionConfig(cookie={"name": "second"}))
    scope = {"type": "http", "headers": []}
    first_session = await first.load("")
    second_session = await second.load("")

    first.bind(scope, first_session)
    second.bind(scope, second_session)

    assert first.get_session(scope) is first_session
    assert second.get_session(Request(scope)) is second_session


def test_get_session_without_middleware():
    manager = SessionManager()

    with pytest.raises(SessionError):
        manager.get_session({"type": "http", "headers": []})
