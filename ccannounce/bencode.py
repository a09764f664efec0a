"""Bencoding module for the announce engine.

Thin wrapper over :mod:`bencodepy` that reports every codec failure as
:class:`~ccannounce.exceptions.BencodeError`.
"""

from __future__ import annotations

from typing import Any

import bencodepy

from ccannounce.exceptions import BencodeError


def decode(data: bytes) -> Any:
    """Decode a bencoded byte string into a value tree.

    Byte strings decode to ``bytes``; dictionary keys are ``bytes``.

    Raises:
        BencodeError: If ``data`` is not valid bencode

    """
    try:
        return bencodepy.decode(data)
    except Exception as e:
        msg = f"Invalid bencoded data: {e}"
        raise BencodeError(msg, {"length": len(data)}) from e


def encode(value: Any) -> bytes:
    """Encode a value tree into bencoded bytes."""
    try:
        return bencodepy.encode(value)
    except Exception as e:
        msg = f"Cannot bencode value of type {type(value).__name__}: {e}"
        raise BencodeError(msg) from e


__all__ = ["decode", "encode"]
