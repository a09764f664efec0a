"""Periodic tracker announce loop.

A BitTorrent client must check in with the torrent's tracker every now and
then, and when particular lifecycle events happen. :class:`Announce` runs
that conversation for one torrent as a background asyncio task:

- the first request carries the ``started`` event;
- subsequent requests are event-less refreshes sent every ``interval``
  seconds, the interval being dictated by the tracker's last response;
- a graceful :meth:`Announce.stop` sends a final ``stopped`` request,
  unless the loop was force-stopped by a fatal error.

Each successful response is handed to the registered listeners.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any

from ccannounce.config import get_config
from ccannounce.exceptions import (
    AnnounceEncodingError,
    BencodeError,
    IntervalError,
    TrackerError,
)
from ccannounce.listeners import Listener, ListenerRegistry
from ccannounce.logging_config import get_logger, log_exception, set_correlation_id
from ccannounce.models import (
    AnnounceConfig,
    AnnounceEvent,
    AnnounceStats,
    LoopState,
    TrackerResponse,
)
from ccannounce.request import build_announce_request
from ccannounce.response import perform_announce
from ccannounce.transport import HttpTransport, Transport

FATAL_ERRORS = (AnnounceEncodingError, BencodeError, IntervalError)


class Announce:
    """Announce loop for a single torrent."""

    def __init__(
        self,
        session: Any,
        transport: Transport | None = None,
        config: AnnounceConfig | None = None,
    ):
        """Create a new announcer for the given session.

        Args:
            session: Torrent state to report (see ``AnnounceSession``)
            transport: HTTP transport; an :class:`HttpTransport` is created
                on start and closed on stop when omitted
            config: Announce configuration, defaults to the global one

        """
        self.session = session
        self.config = config or get_config().announce
        self.listeners = ListenerRegistry()
        self.stats = AnnounceStats()

        self._transport = transport
        self._owns_transport = transport is None
        self._task: asyncio.Task[None] | None = None
        self._exchange: asyncio.Future[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._wake_event: asyncio.Event | None = None

        self._state = LoopState.IDLE
        self._forced = False
        self._initial = True
        self._completed_pending = False
        self._interval = self.config.default_interval
        self._min_interval: int | None = None
        self._last_announce_at = 0.0
        self._tracker_id: str | None = None

        self.logger = get_logger(__name__)

    @property
    def state(self) -> LoopState:
        """Current lifecycle state."""
        return self._state

    @property
    def interval(self) -> int:
        """Seconds to wait before the next periodic announce."""
        return self._interval

    @property
    def forced(self) -> bool:
        """Whether the loop was stopped by a fatal error."""
        return self._forced

    @property
    def is_running(self) -> bool:
        """Whether the announce task is active."""
        return self._task is not None and not self._task.done()

    @property
    def tracker_id(self) -> str | None:
        """Tracker id returned by the tracker, echoed on later requests."""
        return self._tracker_id

    def register(self, listener: Listener) -> None:
        """Register an announce response listener."""
        self.listeners.register(listener)

    async def start(self) -> None:
        """Start the announce task.

        Starting a loop whose task is still active is a no-op.
        """
        if self.is_running:
            return

        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._forced = False
        self._initial = True
        self._completed_pending = False
        self._interval = self.config.default_interval
        self._min_interval = None

        if self._transport is None:
            self._transport = HttpTransport(
                timeout=self.config.request_timeout,
                user_agent=self.config.user_agent,
            )

        self._state = LoopState.RUNNING
        self._task = asyncio.create_task(self._run(), name="bt-announce")

    async def stop(self) -> None:
        """Stop the announce task and wait for it to finish.

        One last ``stopped`` announce is sent to tell the tracker we are
        going away, unless the loop was already force-stopped. Calling it
        again, or on a loop that never started, is harmless.
        """
        self._request_stop()
        await self.wait_stopped()

    async def wait_stopped(self) -> None:
        """Wait until the announce task has finished.

        Returns immediately when called from the loop itself, including
        from a listener, since the loop cannot finish before its caller.
        """
        task = self._task
        current = asyncio.current_task()
        if task is None or current is task or current is self._exchange:
            return
        # wait() rather than await: cancelling the caller must not cancel the loop
        await asyncio.wait({task})

    def announce_completed(self) -> None:
        """Send a ``completed`` event with the next announce.

        The announce goes out right away, or once the tracker's
        ``min interval`` has elapsed since the previous request.
        """
        self._completed_pending = True
        if self._wake_event is not None:
            self._wake_event.set()

    def _request_stop(self) -> None:
        if self._state == LoopState.RUNNING:
            self._state = LoopState.STOPPING
        if self._stop_event is not None:
            self._stop_event.set()
        if self._wake_event is not None:
            self._wake_event.set()

    def _force_stop(self) -> None:
        """Stop without the final ``stopped`` announce."""
        self._forced = True
        self._request_stop()

    def _next_event(self) -> AnnounceEvent:
        if self._initial:
            self._initial = False
            return AnnounceEvent.STARTED
        if self._completed_pending:
            self._completed_pending = False
            return AnnounceEvent.COMPLETED
        return AnnounceEvent.NONE

    def _events(self) -> tuple[asyncio.Event, asyncio.Event]:
        if self._stop_event is None or self._wake_event is None:
            msg = "Announce loop not started"
            raise RuntimeError(msg)
        return self._stop_event, self._wake_event

    async def _run(self) -> None:
        """Main announce loop."""
        stop_event, _ = self._events()
        set_correlation_id()
        self.logger.info(
            "Starting announce loop for %s to %s",
            self._display_name(),
            self.session.announce_url,
        )

        try:
            while not stop_event.is_set():
                await self._cycle(self._next_event())
                if stop_event.is_set():
                    break

                self.logger.debug("Sending next announce in %d seconds", self._interval)
                await self._sleep(self._interval)

            if not self._forced:
                await asyncio.sleep(self.config.stop_grace_delay)
                await self._announce(AnnounceEvent.STOPPED, inhibit=True)
        finally:
            self._state = LoopState.STOPPED
            if self._owns_transport and self._transport is not None:
                await self._transport.close()
                self._transport = None
            self.logger.info(
                "Announce loop for %s stopped%s",
                self._display_name(),
                " (forced)" if self._forced else "",
            )

    async def _cycle(self, event: AnnounceEvent) -> None:
        """Run one announce, abandoning it if a stop arrives and it won't settle."""
        stop_event, _ = self._events()
        exchange = asyncio.ensure_future(self._announce(event))
        stop_wait = asyncio.ensure_future(stop_event.wait())
        self._exchange = exchange

        try:
            done, _ = await asyncio.wait(
                {exchange, stop_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if exchange not in done:
                done, _ = await asyncio.wait(
                    {exchange},
                    timeout=self.config.stop_grace_delay,
                )
            if exchange in done:
                exchange.result()
            else:
                self.logger.debug("Abandoning in-flight %s announce", event.name)
        finally:
            self._exchange = None
            stop_wait.cancel()
            if not exchange.done():
                exchange.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await exchange

    async def _sleep(self, seconds: float) -> None:
        """Sleep ``seconds``, waking early on stop or a pending event.

        A pending ``completed`` event cuts the sleep short, but never below
        the tracker's ``min interval`` since the previous request.
        """
        stop_event, wake_event = self._events()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds

        while not stop_event.is_set():
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(wake_event.wait(), timeout=remaining)
            wake_event.clear()
            if self._completed_pending:
                earliest = self._last_announce_at + (self._min_interval or 0)
                deadline = min(deadline, earliest)

    async def _announce(self, event: AnnounceEvent, inhibit: bool = False) -> None:
        """Build, send and process one announce request.

        Args:
            event: Announce event (``NONE`` for periodic updates)
            inhibit: Do not notify listeners nor apply the interval

        """
        session = self.session
        self.logger.debug(
            "Announcing %sto tracker with %dU/%dD/%dL bytes for %s",
            f"{event.name} " if event != AnnounceEvent.NONE else "",
            session.uploaded,
            session.downloaded,
            session.left,
            self._display_name(),
        )
        self.stats.announces += 1
        self.stats.last_announce = time.time()
        self._last_announce_at = asyncio.get_running_loop().time()

        try:
            url = build_announce_request(
                session,
                event,
                compact=self.config.compact,
                numwant=self.config.numwant,
                tracker_id=self._tracker_id,
            )
            response = await perform_announce(self._transport, url)
            if not response.is_failure and not inhibit:
                self._check_interval(response.interval)
        except FATAL_ERRORS as e:
            log_exception(self.logger, e, f"Fatal error during {event.name} announce")
            self._force_stop()
            return
        except (TrackerError, OSError) as e:
            self.stats.transient_errors += 1
            self.logger.warning("Error reading response from tracker: %s", e)
            return
        except Exception as e:
            # transports may raise their own error types; retry next cycle
            self.stats.transient_errors += 1
            log_exception(self.logger, e, f"Unexpected error during {event.name} announce")
            return

        await self._handle_response(response, inhibit)

    def _check_interval(self, interval: int) -> None:
        if interval <= 0:
            msg = f"Tracker returned non-positive interval {interval}"
            raise IntervalError(msg, {"interval": interval})

    async def _handle_response(self, response: TrackerResponse, inhibit: bool) -> None:
        if response.is_failure:
            self.stats.soft_failures += 1
            self.logger.warning("Tracker failure: %s", response.failure_reason)
            return

        self.stats.successes += 1
        self.stats.last_peer_count = len(response.peers)
        if response.warning_message:
            self.logger.warning("Tracker warning: %s", response.warning_message)
        if response.tracker_id:
            self._tracker_id = response.tracker_id

        if inhibit:
            return

        self._interval = response.interval
        self._min_interval = response.min_interval
        await self.listeners.notify(response)

    def _display_name(self) -> str:
        name = getattr(self.session, "name", "")
        if name:
            return name
        info_hash = getattr(self.session, "info_hash", b"")
        return info_hash.hex() if isinstance(info_hash, (bytes, bytearray)) else str(info_hash)

    async def __aenter__(self) -> Announce:
        """Start announcing on context entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop announcing on context exit."""
        await self.stop()
