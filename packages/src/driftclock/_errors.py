"""Synchronization error taxonomy and structured sync reports.

Every way a synchronization attempt can fail maps onto one
:class:`SyncError` subclass.  The controller catches them all and turns
the attempt into a :class:`SyncReport` — callers of ``now()`` never see
an exception, and callers of ``synchronize()`` get a plain value they
can log or poll.

Error types::

    ResolutionError      ← hostname cannot be resolved
    RequestTimeoutError  ← no reply within the configured timeout
    NetworkError         ← socket / transport-level failure
    ProtocolError        ← malformed or undersized reply
    UnreachableError     ← no connectivity detected before the request

Report payload schema::

    {
        "outcome": "failed",
        "server": "time.google.com",
        "timestamp": "2026-02-14T12:34:56+00:00",
        "correction_ms": null,
        "error_type": "timeout",
        "message": "The NTP request to 'time.google.com' timed out"
    }

Unknown exceptions fall back to the generic ``"error"`` type.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import ClassVar

from driftclock._clock import WallClock

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ClockError(Exception):
    """Base class for all driftclock errors."""


class SyncError(ClockError):
    """A synchronization attempt failed.  Never fatal."""

    error_type: ClassVar[str] = "error"


class ResolutionError(SyncError):
    """The NTP server hostname could not be resolved."""

    error_type = "resolution"


class RequestTimeoutError(SyncError, TimeoutError):
    """The NTP server did not reply within the configured timeout."""

    error_type = "timeout"


class NetworkError(SyncError):
    """A socket or transport-level failure during the exchange."""

    error_type = "network"


class ProtocolError(SyncError):
    """The reply could not be decoded as an NTP packet."""

    error_type = "protocol"


class UnreachableError(SyncError):
    """No network connectivity was detected before the request."""

    error_type = "unreachable"


def error_type_of(error: BaseException) -> str:
    """Return the machine-readable type string for *error*."""
    if isinstance(error, SyncError):
        return error.error_type
    return "error"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class SyncOutcome(StrEnum):
    """Result of a single call to ``synchronize()``."""

    SYNCHRONIZED = "synchronized"
    FAILED = "failed"
    UNREACHABLE = "unreachable"
    SKIPPED = "skipped"
    STOPPED = "stopped"

    @property
    def performed(self) -> bool:
        """Whether an attempt actually ran (as opposed to being rejected)."""
        return self not in (SyncOutcome.SKIPPED, SyncOutcome.STOPPED)


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Immutable outcome of one synchronization attempt."""

    outcome: SyncOutcome
    server: str
    timestamp: str
    correction_ms: float | None = None
    error_type: str | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        """True when the clock model accepted a fresh timestamp."""
        return self.outcome is SyncOutcome.SYNCHRONIZED

    @property
    def performed(self) -> bool:
        """True when the attempt was not rejected outright."""
        return self.outcome.performed

    def to_json(self) -> str:
        """Serialise to a JSON string."""
        return json.dumps(asdict(self))


# ---------------------------------------------------------------------------
# Report builder
# ---------------------------------------------------------------------------


def build_sync_report(
    outcome: SyncOutcome,
    *,
    server: str,
    error: BaseException | None = None,
    correction: timedelta | None = None,
    message: str = "",
    clock: WallClock | None = None,
) -> SyncReport:
    """Build a :class:`SyncReport` for one attempt.

    Args:
        outcome: What happened.
        server: NTP server the attempt targeted.
        error: The exception that failed the attempt, if any.  Its
            message is used when *message* is empty.
        correction: Correction applied by the clock model on success.
        message: Optional human-readable description.
        clock: Optional callable returning a :class:`~datetime.datetime`.
            Defaults to ``datetime.now(UTC)``.

    Returns:
        A frozen dataclass ready for serialisation.
    """
    now = clock() if clock is not None else datetime.now(UTC)
    return SyncReport(
        outcome=outcome,
        server=server,
        timestamp=now.isoformat(),
        correction_ms=(
            correction.total_seconds() * 1000 if correction is not None else None
        ),
        error_type=error_type_of(error) if error is not None else None,
        message=message or (str(error) if error is not None else ""),
    )
