"""Peer list decoding for tracker announce responses.

Trackers return the ``peers`` field in one of two encodings:

- structured: a list of dictionaries with ``ip``, ``port`` and usually
  ``peer id`` keys;
- compact: a single byte string of 6-byte records, a 4-byte IPv4 address
  followed by a 2-byte port, both in network byte order.

The wire type is inspected once by :func:`classify_peers` and the matching
decoder is applied by :func:`decode_peers`.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, Union

from ccannounce.exceptions import BencodeError
from ccannounce.models import PeerAddress

logger = logging.getLogger(__name__)

COMPACT_PEER_SIZE = 6


@dataclass(frozen=True)
class StructuredPeers:
    """Peers field encoded as a list of per-peer dictionaries."""

    entries: list[Any]


@dataclass(frozen=True)
class CompactPeers:
    """Peers field encoded as a compact binary string."""

    data: bytes


PeersField = Union[StructuredPeers, CompactPeers]


def classify_peers(value: Any) -> PeersField:
    """Tag the raw ``peers`` value with its wire encoding.

    Raises:
        BencodeError: If the value is neither a list nor a byte string

    """
    if isinstance(value, list):
        return StructuredPeers(value)
    if isinstance(value, (bytes, bytearray)):
        return CompactPeers(bytes(value))
    msg = f"Unexpected peers field type: {type(value).__name__}"
    raise BencodeError(msg)


def _text(value: Any, field: str) -> str:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"Peer {field} is not valid UTF-8"
            raise BencodeError(msg) from e
    if isinstance(value, str):
        return value
    msg = f"Peer {field} has invalid type {type(value).__name__}"
    raise BencodeError(msg)


def _lookup(entry: dict, key: str) -> Any:
    if key.encode() in entry:
        return entry[key.encode()]
    return entry.get(key)


def decode_structured(entries: list[Any]) -> list[PeerAddress]:
    """Build a peer list from the structured (non-compact) encoding.

    Peer ids are dropped; only ``ip`` and ``port`` are kept.

    Raises:
        BencodeError: If an entry is not a dictionary or lacks ip/port

    """
    peers: list[PeerAddress] = []

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            msg = f"Peer entry {index} is not a dictionary"
            raise BencodeError(msg)

        ip_raw = _lookup(entry, "ip")
        port = _lookup(entry, "port")
        if ip_raw is None or port is None:
            msg = f"Peer entry {index} is missing ip or port"
            raise BencodeError(msg, {"keys": sorted(map(repr, entry))})
        if not isinstance(port, int) or isinstance(port, bool):
            msg = f"Peer entry {index} has a non-integer port"
            raise BencodeError(msg)

        try:
            peers.append(PeerAddress(ip=_text(ip_raw, "ip"), port=port))
        except ValueError as e:
            msg = f"Peer entry {index} is invalid: {e}"
            raise BencodeError(msg) from e

    return peers


def decode_compact(data: bytes) -> list[PeerAddress]:
    """Build a peer list from the compact binary encoding.

    Raises:
        BencodeError: If the length is not a multiple of 6

    """
    if len(data) % COMPACT_PEER_SIZE != 0:
        msg = "Invalid peers binary information string"
        raise BencodeError(msg, {"length": len(data)})

    peers = []
    for start in range(0, len(data), COMPACT_PEER_SIZE):
        ip = ipaddress.IPv4Address(data[start : start + 4])
        port = int.from_bytes(data[start + 4 : start + 6], byteorder="big")
        peers.append(PeerAddress(ip=str(ip), port=port))

    logger.debug("Got compact tracker response with %d peer(s)", len(peers))
    return peers


def decode_peers(field: PeersField) -> list[PeerAddress]:
    """Decode a classified peers field into an ordered peer list."""
    if isinstance(field, CompactPeers):
        return decode_compact(field.data)
    return decode_structured(field.entries)
