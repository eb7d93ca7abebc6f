from __future__ import annotations

import pytest

from dm_service.domain.events.realtime import UserTyping
from dm_service.infrastructure.ws.event_router import EventRouter
from dm_service.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import ALICE_ID, BOB_ID, FakeConnection


def test_lookup_unknown_user_is_absent():
    registry = ConnectionRegistry()

    assert registry.lookup(ALICE_ID) is None
    assert registry.is_online(ALICE_ID) is False


def test_register_returns_superseded_handle():
    registry = ConnectionRegistry()
    first, second = FakeConnection(), FakeConnection()

    assert registry.register(ALICE_ID, first) is None
    assert registry.register(ALICE_ID, second) is first
    assert registry.lookup(ALICE_ID) is second
    assert len(registry) == 1


def test_reregistering_same_handle_supersedes_nothing():
    registry = ConnectionRegistry()
    conn = FakeConnection()
    registry.register(ALICE_ID, conn)

    assert registry.register(ALICE_ID, conn) is None
    assert registry.lookup(ALICE_ID) is conn


def test_stale_unregister_keeps_newer_connection():
    registry = ConnectionRegistry()
    old, new = FakeConnection(), FakeConnection()
    registry.register(ALICE_ID, old)
    registry.register(ALICE_ID, new)

    assert registry.unregister(ALICE_ID, old) is False
    assert registry.lookup(ALICE_ID) is new

    assert registry.unregister(ALICE_ID, new) is True
    assert registry.lookup(ALICE_ID) is None


def test_unregister_never_registered_user():
    registry = ConnectionRegistry()

    assert registry.unregister(ALICE_ID, FakeConnection()) is False


def test_list_user_ids_is_a_snapshot():
    registry = ConnectionRegistry()
    conn = FakeConnection()
    registry.register(ALICE_ID, conn)
    registry.register(BOB_ID, FakeConnection())

    snapshot = registry.list_user_ids()
    registry.unregister(ALICE_ID, conn)

    assert set(snapshot) == {ALICE_ID, BOB_ID}
    assert registry.list_user_ids() == [BOB_ID]


@pytest.mark.asyncio
async def test_superseded_handle_receives_no_routed_events():
    registry = ConnectionRegistry()
    router = EventRouter(registry)
    old, new = FakeConnection(), FakeConnection()
    registry.register(BOB_ID, old)
    registry.register(BOB_ID, new)

    await router.emit_to_user(BOB_ID, UserTyping(user_id=ALICE_ID))

    assert old.events == []
    assert new.names() == ["userTyping"]
