from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from dm_service.application.ports.clock import FixedClock
from dm_service.domain.events.realtime import (
    OnlineUsers,
    UserLeftChat,
    UserStoppedTyping,
    UserTyping,
    UserViewingChat,
)
from dm_service.domain.value_objects.enums import EphemeralKind
from dm_service.infrastructure.ws.presence import SUPERSEDED_CLOSE_CODE, PresenceTracker
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, FakeConnection


@pytest.mark.asyncio
async def test_connect_broadcasts_snapshot_including_self(presence):
    alice_conn, bob_conn = FakeConnection(), FakeConnection()

    await presence.connect(ALICE_ID, alice_conn)
    await presence.connect(BOB_ID, bob_conn)

    assert alice_conn.of_type(OnlineUsers)[0].user_ids == (ALICE_ID,)
    latest = alice_conn.of_type(OnlineUsers)[-1]
    assert set(latest.user_ids) == {ALICE_ID, BOB_ID}
    assert set(bob_conn.of_type(OnlineUsers)[-1].user_ids) == {ALICE_ID, BOB_ID}


@pytest.mark.asyncio
async def test_second_connection_supersedes_first(presence, registry):
    first, second = FakeConnection(), FakeConnection()

    await presence.connect(ALICE_ID, first)
    await presence.connect(ALICE_ID, second)

    assert first.closed_with == SUPERSEDED_CLOSE_CODE
    assert second.closed_with is None
    assert registry.lookup(ALICE_ID) is second
    assert presence.online_user_ids() == [ALICE_ID]


@pytest.mark.asyncio
async def test_stale_disconnect_does_not_evict_newer_connection(presence, registry):
    first, second = FakeConnection(), FakeConnection()
    await presence.connect(ALICE_ID, first)
    await presence.connect(ALICE_ID, second)
    await presence.start_viewing(ALICE_ID, BOB_ID)

    removed = await presence.disconnect(ALICE_ID, first)

    assert removed is False
    assert registry.lookup(ALICE_ID) is second
    assert presence.viewing(ALICE_ID) is not None


@pytest.mark.asyncio
async def test_disconnect_broadcasts_and_clears_interactions(presence):
    alice_conn, bob_conn, carol_conn = FakeConnection(), FakeConnection(), FakeConnection()
    await presence.connect(ALICE_ID, alice_conn)
    await presence.connect(BOB_ID, bob_conn)
    await presence.connect(CAROL_ID, carol_conn)
    await presence.start_viewing(ALICE_ID, BOB_ID)
    await presence.start_typing(ALICE_ID, CAROL_ID)
    bob_conn.events.clear()
    carol_conn.events.clear()

    removed = await presence.disconnect(ALICE_ID, alice_conn)

    assert removed is True
    assert presence.interactions_of(ALICE_ID) == []
    assert set(bob_conn.of_type(OnlineUsers)[-1].user_ids) == {BOB_ID, CAROL_ID}
    assert bob_conn.of_type(UserLeftChat) == [UserLeftChat(user_id=ALICE_ID)]
    assert carol_conn.of_type(UserStoppedTyping) == [UserStoppedTyping(user_id=ALICE_ID)]


@pytest.mark.asyncio
async def test_typing_is_relayed_to_peer_only(presence):
    alice_conn, bob_conn, carol_conn = FakeConnection(), FakeConnection(), FakeConnection()
    await presence.connect(ALICE_ID, alice_conn)
    await presence.connect(BOB_ID, bob_conn)
    await presence.connect(CAROL_ID, carol_conn)

    await presence.start_typing(ALICE_ID, BOB_ID)

    assert bob_conn.of_type(UserTyping) == [UserTyping(user_id=ALICE_ID)]
    assert carol_conn.of_type(UserTyping) == []
    assert alice_conn.of_type(UserTyping) == []


@pytest.mark.asyncio
async def test_repeated_typing_keeps_single_entry(presence):
    await presence.start_typing(ALICE_ID, BOB_ID)
    first = presence.interactions_of(ALICE_ID)

    await presence.start_typing(ALICE_ID, BOB_ID)

    assert presence.interactions_of(ALICE_ID) == first
    assert first[0].kind is EphemeralKind.TYPING


@pytest.mark.asyncio
async def test_stop_typing_without_entry_emits_nothing(presence):
    bob_conn = FakeConnection()
    await presence.connect(BOB_ID, bob_conn)
    bob_conn.events.clear()

    await presence.stop_typing(ALICE_ID, BOB_ID)

    assert bob_conn.events == []


@pytest.mark.asyncio
async def test_stop_typing_clears_entry_and_notifies(presence):
    bob_conn = FakeConnection()
    await presence.connect(BOB_ID, bob_conn)
    await presence.start_typing(ALICE_ID, BOB_ID)

    await presence.stop_typing(ALICE_ID, BOB_ID)

    assert presence.interactions_of(ALICE_ID) == []
    assert bob_conn.names()[-2:] == ["userTyping", "userStoppedTyping"]


@pytest.mark.asyncio
async def test_switching_viewed_chat_leaves_previous_one(presence):
    bob_conn, carol_conn = FakeConnection(), FakeConnection()
    await presence.connect(BOB_ID, bob_conn)
    await presence.connect(CAROL_ID, carol_conn)

    await presence.start_viewing(ALICE_ID, BOB_ID)
    await presence.start_viewing(ALICE_ID, CAROL_ID)

    assert presence.viewing(ALICE_ID).peer_id == CAROL_ID
    assert bob_conn.of_type(UserViewingChat) == [UserViewingChat(user_id=ALICE_ID)]
    assert bob_conn.of_type(UserLeftChat) == [UserLeftChat(user_id=ALICE_ID)]
    assert carol_conn.of_type(UserViewingChat) == [UserViewingChat(user_id=ALICE_ID)]


@pytest.mark.asyncio
async def test_stop_viewing_notifies_peer(presence):
    bob_conn = FakeConnection()
    await presence.connect(BOB_ID, bob_conn)
    await presence.start_viewing(ALICE_ID, BOB_ID)

    await presence.stop_viewing(ALICE_ID, BOB_ID)

    assert presence.viewing(ALICE_ID) is None
    assert bob_conn.names()[-1] == "userLeftChat"


@pytest.mark.asyncio
async def test_events_for_offline_peer_are_dropped(presence):
    alice_conn = FakeConnection()
    await presence.connect(ALICE_ID, alice_conn)

    await presence.start_typing(ALICE_ID, BOB_ID)

    # state is still tracked so a later stop or disconnect can clean it up
    assert presence.interactions_of(ALICE_ID)[0].peer_id == BOB_ID
    assert alice_conn.of_type(UserTyping) == []


@pytest.mark.asyncio
async def test_interaction_keeps_first_start_time(registry, events):
    clock = FixedClock(datetime(2024, 5, 1, tzinfo=timezone.utc))
    tracker = PresenceTracker(registry, events, clock=clock)

    await tracker.start_typing(ALICE_ID, BOB_ID)
    started = clock.now()
    clock.advance(seconds=5)
    await tracker.start_typing(ALICE_ID, BOB_ID)

    assert tracker.interactions_of(ALICE_ID)[0].since == started


@pytest.mark.asyncio
async def test_overlapping_connects_end_on_the_latest_snapshot(presence):
    alice_conn, bob_conn = FakeConnection(), FakeConnection()
    carol_conn = FakeConnection()
    await presence.connect(CAROL_ID, carol_conn)
    carol_conn.delay = 0.05

    await asyncio.gather(
        presence.connect(ALICE_ID, alice_conn),
        presence.connect(BOB_ID, bob_conn),
    )

    everyone = {ALICE_ID, BOB_ID, CAROL_ID}
    assert set(presence.online_user_ids()) == everyone
    for conn in (alice_conn, bob_conn, carol_conn):
        assert set(conn.of_type(OnlineUsers)[-1].user_ids) == everyone
