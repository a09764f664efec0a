"""Announce response listeners.

Listeners receive ``(leechers, seeders, interval, peers)`` after every
successful tracker response. They are either objects exposing
``handle_announce_response`` or plain callables, synchronous or async.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from ccannounce.models import PeerAddress, TrackerResponse

UNKNOWN_COUNT = -1


@runtime_checkable
class AnnounceResponseListener(Protocol):
    """Receives the peer list of each successful announce."""

    def handle_announce_response(
        self,
        leechers: int,
        seeders: int,
        interval: int,
        peers: list[PeerAddress],
    ) -> Awaitable[None] | None:
        """Handle one tracker response."""
        ...


ListenerCallback = Callable[[int, int, int, list[PeerAddress]], Any]
Listener = Union[AnnounceResponseListener, ListenerCallback]


class ListenerRegistry:
    """Insertion-ordered set of announce response listeners."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        # dict keeps insertion order and makes registration idempotent
        self._listeners: dict[Listener, None] = {}
        self.logger = logging.getLogger(__name__)

    def register(self, listener: Listener) -> None:
        """Register a listener; registering it twice has no effect."""
        if not isinstance(listener, AnnounceResponseListener) and not callable(listener):
            msg = f"Listener must be callable or define handle_announce_response: {listener!r}"
            raise TypeError(msg)
        self._listeners[listener] = None

    def unregister(self, listener: Listener) -> None:
        """Remove a listener if registered."""
        self._listeners.pop(listener, None)

    def __len__(self) -> int:
        """Number of registered listeners."""
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        """Whether ``listener`` is registered."""
        return listener in self._listeners

    async def notify(self, response: TrackerResponse) -> None:
        """Deliver ``response`` to every listener in registration order.

        Unknown leecher/seeder counts are reported as -1. An exception raised
        by one listener is logged and does not reach the caller or the other
        listeners.
        """
        leechers = UNKNOWN_COUNT if response.leechers is None else response.leechers
        seeders = UNKNOWN_COUNT if response.seeders is None else response.seeders
        peers = list(response.peers)

        for listener in list(self._listeners):
            if isinstance(listener, AnnounceResponseListener):
                callback = listener.handle_announce_response
            else:
                callback = listener
            try:
                result = callback(leechers, seeders, response.interval, peers)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self.logger.warning(
                    "Error in announce response listener %r: %s",
                    listener,
                    e,
                    exc_info=True,
                )
