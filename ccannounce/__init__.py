"""ccAnnounce - HTTP tracker announce client for BitTorrent."""

from __future__ import annotations

__version__ = "0.1.0"

from ccannounce.announce import Announce
from ccannounce.listeners import AnnounceResponseListener, ListenerRegistry
from ccannounce.models import AnnounceEvent, LoopState, PeerAddress, TrackerResponse
from ccannounce.session import AnnounceSession

__all__ = [
    "Announce",
    "AnnounceEvent",
    "AnnounceResponseListener",
    "AnnounceSession",
    "ListenerRegistry",
    "LoopState",
    "PeerAddress",
    "TrackerResponse",
    "__version__",
]
