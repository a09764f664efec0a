"""Tests for announce response listener registration and delivery."""

from __future__ import annotations

import logging

import pytest

from ccannounce.listeners import UNKNOWN_COUNT, AnnounceResponseListener, ListenerRegistry
from ccannounce.models import PeerAddress, TrackerResponse

PEERS = [PeerAddress(ip="1.2.3.4", port=6881)]


class ObjectListener:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def handle_announce_response(self, leechers, seeders, interval, peers):
        self.log.append((self.name, leechers, seeders, interval, peers))


def test_object_listener_satisfies_protocol():
    assert isinstance(ObjectListener("a", []), AnnounceResponseListener)


def test_register_is_idempotent():
    registry = ListenerRegistry()
    listener = ObjectListener("a", [])

    registry.register(listener)
    registry.register(listener)

    assert len(registry) == 1
    assert listener in registry


def test_unregister():
    registry = ListenerRegistry()
    listener = ObjectListener("a", [])
    registry.register(listener)

    registry.unregister(listener)
    registry.unregister(listener)

    assert len(registry) == 0


@pytest.mark.parametrize("value", [None, 42, "listener"])
def test_register_rejects_non_listeners(value):
    with pytest.raises(TypeError):
        ListenerRegistry().register(value)


@pytest.mark.asyncio
async def test_notify_in_registration_order():
    log: list[tuple] = []
    registry = ListenerRegistry()
    registry.register(ObjectListener("first", log))
    registry.register(lambda *args: log.append(("second", *args)))
    registry.register(ObjectListener("third", log))

    await registry.notify(TrackerResponse(interval=30, peers=PEERS, leechers=2, seeders=7))

    assert [entry[0] for entry in log] == ["first", "second", "third"]
    assert log[0][1:] == (2, 7, 30, PEERS)


@pytest.mark.asyncio
async def test_notify_reports_unknown_counts():
    log: list[tuple] = []
    registry = ListenerRegistry()
    registry.register(ObjectListener("a", log))

    await registry.notify(TrackerResponse(interval=30, peers=[]))

    assert log == [("a", UNKNOWN_COUNT, UNKNOWN_COUNT, 30, [])]


@pytest.mark.asyncio
async def test_async_listeners_are_awaited():
    received = []

    async def listener(leechers, seeders, interval, peers):
        received.append(interval)

    registry = ListenerRegistry()
    registry.register(listener)
    await registry.notify(TrackerResponse(interval=45, peers=PEERS))

    assert received == [45]


@pytest.mark.asyncio
async def test_listener_errors_are_isolated(caplog):
    log: list[tuple] = []

    def broken(*args):
        raise ValueError("boom")

    registry = ListenerRegistry()
    registry.register(broken)
    registry.register(ObjectListener("after", log))

    with caplog.at_level(logging.WARNING):
        await registry.notify(TrackerResponse(interval=30, peers=PEERS))

    assert len(log) == 1
    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_listener_cannot_mutate_response_peers():
    def mutating(leechers, seeders, interval, peers):
        peers.clear()

    registry = ListenerRegistry()
    registry.register(mutating)
    response = TrackerResponse(interval=30, peers=PEERS)

    await registry.notify(response)

    assert response.peers == PEERS
