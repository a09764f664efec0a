"""Pydantic models for ccAnnounce.

Provides validated data models for type safety and runtime validation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AnnounceEvent(str, Enum):
    """Announce request event types.

    A client joining a swarm sends ``started``, leaving it sends ``stopped``
    and finishing the download sends ``completed``. Periodic refreshes carry
    no event (``NONE``), which is never put on the wire.
    """

    NONE = ""
    STARTED = "started"
    STOPPED = "stopped"
    COMPLETED = "completed"


class LoopState(str, Enum):
    """Announce loop lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class PeerAddress(BaseModel):
    """Network address of a swarm peer. Peer ids are not kept."""

    ip: str = Field(..., description="Peer IP address")
    port: int = Field(..., ge=0, le=65535, description="Peer port number")

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v):
        """Validate IP address is present."""
        if not v:
            msg = "IP address cannot be empty"
            raise ValueError(msg)
        return v

    def __str__(self) -> str:
        """String representation of the peer address."""
        return f"{self.ip}:{self.port}"

    def __hash__(self) -> int:
        """Hash peer address for use in sets and as dictionary key."""
        return hash((self.ip, self.port))

    def __eq__(self, other) -> bool:
        """Equality comparison for peer addresses."""
        if not isinstance(other, PeerAddress):
            return False
        return self.ip == other.ip and self.port == other.port


class TrackerResponse(BaseModel):
    """Interpreted tracker announce response.

    When ``failure_reason`` is set the response is a soft failure: the
    interval and peers carry no information and must not be applied.
    """

    interval: int = Field(default=0, description="Announce interval in seconds")
    peers: list[PeerAddress] = Field(default_factory=list, description="List of peers")
    leechers: int | None = Field(None, description="Number of leechers (incomplete)")
    seeders: int | None = Field(None, description="Number of seeders (complete)")
    min_interval: int | None = Field(None, description="Minimum announce interval")
    tracker_id: str | None = Field(None, description="Tracker ID to echo back")
    warning_message: str | None = Field(None, description="Warning message")
    failure_reason: str | None = Field(None, description="Failure reason")

    @property
    def is_failure(self) -> bool:
        """Whether the tracker reported a failure reason."""
        return self.failure_reason is not None


class AnnounceStats(BaseModel):
    """Per-loop announce counters."""

    announces: int = Field(default=0, ge=0, description="Announce requests attempted")
    successes: int = Field(default=0, ge=0, description="Successful responses")
    soft_failures: int = Field(
        default=0,
        ge=0,
        description="Responses carrying a failure reason",
    )
    transient_errors: int = Field(
        default=0,
        ge=0,
        description="Exchanges that failed at the transport level",
    )
    last_announce: float = Field(default=0.0, description="Time of the last announce")
    last_peer_count: int = Field(default=0, ge=0, description="Peers in last response")


class AnnounceConfig(BaseModel):
    """Announce loop configuration."""

    default_interval: int = Field(
        default=5,
        ge=1,
        le=86400,
        description="Interval in seconds used before the tracker dictates one",
    )
    stop_grace_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Delay before the final 'stopped' announce",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="HTTP request timeout in seconds",
    )
    numwant: int | None = Field(
        default=None,
        ge=0,
        le=1000,
        description="Number of peers to request (omitted when unset)",
    )
    compact: bool = Field(default=True, description="Request compact peer lists")
    user_agent: str | None = Field(
        default=None,
        description="HTTP User-Agent (defaults to ccannounce/<version>)",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(default=False, description="Use structured logging")
    rich_console: bool = Field(
        default=False,
        description="Render console logs with rich",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    announce: AnnounceConfig = Field(
        default_factory=AnnounceConfig,
        description="Announce configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )