"""Announce session state.

The session is owned by the download engine: it updates the transfer
counters while the announce loop reads them once per cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ccannounce.utils.version import get_full_peer_id


@dataclass
class AnnounceSession:
    """Torrent state reported to the tracker."""

    info_hash: bytes
    announce_url: str
    port: int
    ip: str = "0.0.0.0"
    peer_id: bytes | str = field(default_factory=get_full_peer_id)
    uploaded: int = 0
    downloaded: int = 0
    left: int = 0
    name: str = ""
