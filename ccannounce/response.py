"""Tracker announce response interpretation.

Performs one request/response exchange and turns the bencoded body into a
:class:`~ccannounce.models.TrackerResponse`. A ``failure reason`` yields a
soft-failure response; malformed bodies raise :class:`BencodeError`.
"""

from __future__ import annotations

import logging
from typing import Any

from ccannounce import bencode
from ccannounce.exceptions import BencodeError
from ccannounce.models import TrackerResponse
from ccannounce.peers import classify_peers, decode_peers
from ccannounce.transport import Transport

logger = logging.getLogger(__name__)


def _optional_text(decoded: dict[bytes, Any], key: bytes) -> str | None:
    value = decoded.get(key)
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _optional_int(decoded: dict[bytes, Any], *keys: bytes) -> int | None:
    for key in keys:
        value = decoded.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def interpret_response(body: bytes) -> TrackerResponse:
    """Interpret a raw announce response body.

    Args:
        body: Bencoded response from the tracker

    Returns:
        TrackerResponse, with ``failure_reason`` set when the tracker
        refused the announce

    Raises:
        BencodeError: If the body is not a bencoded dictionary, the interval
            is missing or not an integer, or the peers field is malformed

    """
    decoded = bencode.decode(body)
    if not isinstance(decoded, dict):
        msg = "Tracker response is not a dictionary"
        raise BencodeError(msg, {"type": type(decoded).__name__})

    if b"failure reason" in decoded:
        reason = decoded[b"failure reason"]
        if isinstance(reason, bytes):
            reason = reason.decode("utf-8", errors="replace")
        else:
            reason = "Announce error, and couldn't parse failure reason!"
        return TrackerResponse(failure_reason=reason)

    interval = decoded.get(b"interval")
    if interval is None:
        msg = "Missing interval in tracker response"
        raise BencodeError(msg)
    if not isinstance(interval, int) or isinstance(interval, bool):
        msg = "Tracker interval is not an integer"
        raise BencodeError(msg, {"type": type(interval).__name__})

    peers = []
    if b"peers" in decoded:
        peers = decode_peers(classify_peers(decoded[b"peers"]))

    response = TrackerResponse(
        interval=interval,
        peers=peers,
        leechers=_optional_int(decoded, b"incomplete", b"leechers"),
        seeders=_optional_int(decoded, b"complete", b"seeders"),
        min_interval=_optional_int(decoded, b"min interval"),
        tracker_id=_optional_text(decoded, b"tracker id"),
        warning_message=_optional_text(decoded, b"warning message"),
    )

    logger.debug(
        "Tracker response parsed: interval=%d, peers=%d, seeders=%s, leechers=%s",
        response.interval,
        len(response.peers),
        response.seeders if response.seeders is not None else "N/A",
        response.leechers if response.leechers is not None else "N/A",
    )
    return response


async def perform_announce(transport: Transport, url: str) -> TrackerResponse:
    """Send one announce request and interpret the reply.

    Raises:
        TrackerError: If the transport fails (transient)
        BencodeError: If the reply cannot be interpreted (fatal)

    """
    body = await transport.get(url)
    return interpret_response(body)
