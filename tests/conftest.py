"""Pytest configuration and shared fixtures for ccAnnounce tests."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import urllib.parse
from typing import Any

import pytest

from ccannounce import bencode
from ccannounce.config import ENV_MAPPINGS, reset_config
from ccannounce.models import AnnounceConfig, PeerAddress
from ccannounce.session import AnnounceSession

INFO_HASH = bytes(range(20))
PEER_ID = b"-CA0001-abcdefghijkl"


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async"),
        ("unit", "marks tests as unit tests"),
        ("integration", "marks tests as integration tests"),
        ("tracker", "marks tests as tracker tests"),
        ("cli", "marks tests as CLI tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep environment and stray config files out of the global config."""
    for env_name in ENV_MAPPINGS:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    package_logger = logging.getLogger("ccannounce")
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


def make_body(**fields: Any) -> bytes:
    """Bencode a tracker response, using the wire spelling of keys."""
    return bencode.encode(
        {key.replace("_", " ").encode(): value for key, value in fields.items()}
    )


def encode_compact(peers: list[PeerAddress]) -> bytes:
    """Encode IPv4 peers the way trackers send compact peer lists."""
    return b"".join(
        ipaddress.IPv4Address(peer.ip).packed + peer.port.to_bytes(2, "big")
        for peer in peers
    )


def event_of(url: str) -> str | None:
    """Return the ``event`` parameter of an announce URL, if any."""
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    values = query.get("event")
    return values[0] if values else None


class FakeTransport:
    """Scripted transport returning queued bodies or raising queued errors."""

    def __init__(self, responses: list[Any] | None = None, block_first: bool = False):
        self.responses = list(responses or [])
        self.default = make_body(interval=60, peers=b"")
        self.urls: list[str] = []
        self.closed = False
        self.block_first = block_first
        self.cancelled = False

    @property
    def events(self) -> list[str | None]:
        return [event_of(url) for url in self.urls]

    async def get(self, url: str) -> bytes:
        self.urls.append(url)
        if self.block_first and len(self.urls) == 1:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if not self.responses:
            return self.default
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


async def wait_for_calls(transport: FakeTransport, count: int, timeout: float = 2.0) -> None:
    """Yield to the event loop until ``transport`` received ``count`` requests."""

    async def _poll() -> None:
        while len(transport.urls) < count:
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout=timeout)


def record_sleeps(loop) -> list[float]:
    """Replace the loop's interval sleep with a recorder that only yields."""
    sleeps: list[float] = []

    async def _fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        await asyncio.sleep(0)

    loop._sleep = _fake_sleep
    return sleeps


@pytest.fixture
def session() -> AnnounceSession:
    """Announce session for a half-downloaded torrent."""
    return AnnounceSession(
        info_hash=INFO_HASH,
        announce_url="http://tracker.example/announce",
        port=6881,
        ip="10.0.0.2",
        peer_id=PEER_ID,
        uploaded=100,
        downloaded=200,
        left=300,
        name="example",
    )


@pytest.fixture
def announce_config() -> AnnounceConfig:
    """Announce configuration without grace delays."""
    return AnnounceConfig(default_interval=5, stop_grace_delay=0.0)
