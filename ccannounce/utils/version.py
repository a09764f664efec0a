"""Version management utilities for ccAnnounce.

This module provides functions to:
- Retrieve the installed package version using importlib
- Format user-agent strings
- Generate 20-byte peer ids
"""

from __future__ import annotations

import importlib.metadata
import os
import re
from typing import Final

NETWORK_CLIENT_NAME: Final[str] = "ccannounce"


def get_version() -> str:
    """Get the installed package version.

    Falls back to ``ccannounce.__version__`` if metadata is unavailable.
    """
    try:
        return importlib.metadata.version("ccannounce")
    except importlib.metadata.PackageNotFoundError:
        import ccannounce

        return getattr(ccannounce, "__version__", "0.0.1")


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse version string into major, minor, patch components.

    Raises:
        ValueError: If version format is invalid

    """
    # "0.1.0-alpha.1" -> "0.1.0"
    version_clean = re.split(r"[-+]", version)[0]

    parts = version_clean.split(".")
    if len(parts) < 2:
        msg = f"Invalid version format: {version} (expected MAJOR.MINOR.PATCH)"
        raise ValueError(msg)

    major = int(parts[0])
    minor = int(parts[1])
    patch = int(parts[2]) if len(parts) > 2 else 0

    return (major, minor, patch)


def get_peer_id_prefix(version: str | None = None) -> bytes:
    """Generate peer_id prefix from version.

    Pattern: -CA{major:02d}{minor:02d}-, patch version is ignored.

    Examples:
        Version 0.1.0 -> -CA0001-
        Version 1.2.3 -> -CA0102-

    """
    if version is None:
        version = get_version()

    major, minor, _patch = parse_version(version)
    return f"-CA{major:02d}{minor:02d}-".encode()


def get_user_agent(version: str | None = None) -> str:
    """Format user-agent string for HTTP requests, e.g. ``ccannounce/0.1.0``."""
    if version is None:
        version = get_version()

    return f"{NETWORK_CLIENT_NAME}/{version}"


def get_full_peer_id(version: str | None = None) -> bytes:
    """Generate a complete 20-byte peer_id: 8-byte prefix + 12 random bytes."""
    return get_peer_id_prefix(version) + os.urandom(12)
