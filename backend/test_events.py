"""Tests for the per-user event stream"""
import asyncio
import json

import pytest

from marlan.events import ConnectionLimitReached, EventsManager
from marlan.utils.sse import format_sse


def _payload(frame):
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


def test_format_sse():
    assert format_sse({"type": "ping"}) == 'data: {"type": "ping"}\n\n'


def test_connection_limit():
    events = EventsManager(max_connections=1)
    events.connect("user-1")

    with pytest.raises(ConnectionLimitReached):
        events.connect("user-2")


def test_send_event_reaches_only_target_user():
    events = EventsManager()
    first = events.connect("user-1")
    second = events.connect("user-1")
    other = events.connect("user-2")

    delivered = events.send_event_to_user("user-1", {"type": "deepSearch", "status": "started"})

    assert delivered == 2
    assert first.queue.qsize() == second.queue.qsize() == 1
    assert other.queue.empty()
    assert events.send_event_to_user("nobody", {"type": "ping"}) == 0


def test_stream_sends_connected_then_events_and_disconnects():
    events = EventsManager(ping_interval=5)

    async def scenario():
        client = events.connect("user-1234567890")
        events.send_event_to_user("user-1234567890", {"type": "deepSearch", "status": "completed"})
        frames = [frame async for frame in events.stream(client, max_events=2)]
        return client, frames

    client, frames = asyncio.run(scenario())

    connected = _payload(frames[0])
    assert connected == {"type": "connected", "connectionId": client.connection_id, "userId": "user-123..."}
    assert _payload(frames[1]) == {"type": "deepSearch", "status": "completed"}
    assert events.client_count == 0


def test_stream_pings_when_idle():
    events = EventsManager(ping_interval=0.01)

    async def scenario():
        client = events.connect("user-1")
        return [frame async for frame in events.stream(client, max_events=3)]

    frames = asyncio.run(scenario())

    assert [_payload(f)["type"] for f in frames] == ["connected", "ping", "ping"]
    assert events.client_count == 0


def test_broadcast_reaches_everyone():
    events = EventsManager()
    clients = [events.connect("user-1"), events.connect("user-2")]

    assert events.broadcast({"type": "notice"}) == 2
    assert all(c.queue.get_nowait() == {"type": "notice"} for c in clients)
