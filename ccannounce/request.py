"""Announce request construction.

Builds the HTTP tracker announce query from a session snapshot and the
lifecycle event, and renders it onto the tracker's announce URL.
"""

from __future__ import annotations

import urllib.parse
from typing import Any, Union

from ccannounce.exceptions import AnnounceEncodingError
from ccannounce.models import AnnounceEvent

INFO_HASH_LENGTH = 20

ParamValue = Union[str, bytes, int]


def build_announce_params(
    session: Any,
    event: AnnounceEvent,
    *,
    compact: bool = True,
    numwant: int | None = None,
    tracker_id: str | None = None,
) -> dict[str, ParamValue]:
    """Collect announce parameters in their wire order.

    ``session`` is read once; its counters may be updated concurrently by
    the download engine.

    Raises:
        AnnounceEncodingError: If the info hash is not 20 raw bytes

    """
    info_hash = session.info_hash
    if not isinstance(info_hash, (bytes, bytearray)) or len(info_hash) != INFO_HASH_LENGTH:
        msg = "Info hash must be 20 raw bytes"
        raise AnnounceEncodingError(msg, {"info_hash": repr(info_hash)})

    params: dict[str, ParamValue] = {
        "info_hash": bytes(info_hash),
        "peer_id": session.peer_id,
        "port": session.port,
        "uploaded": session.uploaded,
        "downloaded": session.downloaded,
        "left": session.left,
    }

    if event != AnnounceEvent.NONE:
        params["event"] = AnnounceEvent(event).value

    params["ip"] = session.ip
    if compact:
        params["compact"] = 1
    if numwant is not None:
        params["numwant"] = numwant
    if tracker_id:
        params["trackerid"] = tracker_id

    return params


def _encode_value(key: str, value: ParamValue) -> str:
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value)
    try:
        return urllib.parse.quote(value, safe="")
    except (TypeError, UnicodeEncodeError) as e:
        msg = f"Cannot encode announce parameter {key!r}: {e}"
        raise AnnounceEncodingError(msg) from e


def validate_endpoint(endpoint: str) -> str:
    """Check that ``endpoint`` is an absolute HTTP(S) URL.

    Raises:
        AnnounceEncodingError: If the URL is malformed

    """
    try:
        parsed = urllib.parse.urlsplit(endpoint)
    except (TypeError, ValueError) as e:
        msg = f"Malformed announce URL: {endpoint!r}"
        raise AnnounceEncodingError(msg) from e

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        msg = f"Malformed announce URL: {endpoint!r}"
        raise AnnounceEncodingError(msg, {"scheme": parsed.scheme})

    return endpoint


def build_announce_url(endpoint: str, params: dict[str, ParamValue]) -> str:
    """Append percent-encoded ``params`` to ``endpoint``.

    Parameters keep their insertion order. The separator is ``&`` when the
    endpoint already has a query string and ``?`` otherwise.

    Raises:
        AnnounceEncodingError: If the endpoint or a value cannot be encoded

    """
    validate_endpoint(endpoint)

    if not params:
        return endpoint

    query = "&".join(f"{key}={_encode_value(key, value)}" for key, value in params.items())
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{query}"


def build_announce_request(
    session: Any,
    event: AnnounceEvent,
    *,
    compact: bool = True,
    numwant: int | None = None,
    tracker_id: str | None = None,
) -> str:
    """Build the full announce URL for ``session`` and ``event``."""
    params = build_announce_params(
        session,
        event,
        compact=compact,
        numwant=numwant,
        tracker_id=tracker_id,
    )
    return build_announce_url(session.announce_url, params)
