"""Tests: RoomBroadcaster: subscription bookkeeping and fan-out."""

import pytest

from broadcaster import MESSAGE_EVENT, ROOM_DATA_EVENT, RoomBroadcaster
from schemas.chat import ChatMessage, User
from tests.fakes import FakeServer


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def broadcaster(server):
    b = RoomBroadcaster(server)
    b.subscribe("sid-1", "Room1")
    b.subscribe("sid-2", "room1")
    b.subscribe("sid-3", "lobby")
    return b


def test_subscribe_normalizes_room(broadcaster):
    assert broadcaster.members("ROOM1") == {"sid-1", "sid-2"}
    assert broadcaster.members("lobby") == {"sid-3"}


def test_unsubscribe_drops_empty_rooms(broadcaster):
    broadcaster.unsubscribe("sid-3", "lobby")
    broadcaster.unsubscribe("sid-3", "lobby")

    assert broadcaster.members("lobby") == set()
    assert "lobby" not in broadcaster._rooms


async def test_deliver_reaches_every_member(broadcaster, server):
    await broadcaster.deliver("room1", ChatMessage(user="alice", text="hey"))

    assert server.received("sid-1", MESSAGE_EVENT) == [{"user": "alice", "text": "hey"}]
    assert server.received("sid-2", MESSAGE_EVENT) == [{"user": "alice", "text": "hey"}]
    assert server.received("sid-3") == []


async def test_announce_can_skip_one_connection(broadcaster, server):
    await broadcaster.announce("room1", ChatMessage(user="admin", text="bob has joined!"), skip_sid="sid-2")

    assert len(server.received("sid-1")) == 1
    assert server.received("sid-2") == []


async def test_send_private_targets_one_connection(broadcaster, server):
    await broadcaster.send_private("sid-2", ChatMessage(user="admin", text="welcome"))

    assert [to for _, _, to in server.emitted] == ["sid-2"]


async def test_push_roster_sends_room_data(broadcaster, server):
    users = [User(id="sid-1", name="alice", room="room1")]

    await broadcaster.push_roster("Room1", users)

    expected = {"room": "room1", "users": [{"id": "sid-1", "name": "alice", "room": "room1"}]}
    assert server.received("sid-1", ROOM_DATA_EVENT) == [expected]
    assert server.received("sid-2", ROOM_DATA_EVENT) == [expected]


async def test_failed_send_does_not_stop_others(broadcaster, server):
    server.broken.add("sid-1")

    await broadcaster.deliver("room1", ChatMessage(user="bot", text="still here"))

    assert server.received("sid-2") == [{"user": "bot", "text": "still here"}]


async def test_deliver_to_empty_room_is_noop(server):
    await RoomBroadcaster(server).deliver("nowhere", ChatMessage(user="bot", text="hi"))

    assert server.emitted == []
