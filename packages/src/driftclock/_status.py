"""Status snapshots for a running clock service.

Emits one JSON line per snapshot to a sink (stdout by default) so that
supervisors and log shippers can follow synchronization health.

Status payload schema::

    {
        "status": "online",
        "state": "synchronized",
        "synchronized": true,
        "extrapolating": true,
        "now": "2026-02-14T13:34:56.789+01:00",
        "server": "time.google.com",
        "uptime_s": 3600.0,
        "sync_count": 60,
        "failure_count": 1,
        "last_outcome": "synchronized",
        "last_correction_ms": -1.25
    }

Publication behaviour:

- **Fire-and-forget** — sink failures are logged, never propagated.
- **Offline on shutdown** — a final snapshot with ``"status": "offline"``
  is written when the service stops.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import asdict, dataclass, field

from driftclock._clock import ClockPort
from driftclock._controller import SyncController
from driftclock._model import ClockModel

logger = logging.getLogger(__name__)

type StatusSink = Callable[[str], None]
"""Callable receiving one serialised status line."""


def stdout_sink(line: str) -> None:
    """Write *line* to stdout and flush."""
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClockStatus:
    """Immutable status snapshot ready for JSON serialisation."""

    status: str
    state: str
    synchronized: bool
    extrapolating: bool
    now: str
    server: str
    uptime_s: float
    sync_count: int
    failure_count: int
    last_outcome: str | None = None
    last_correction_ms: float | None = None

    def to_json(self) -> str:
        """Serialise to a JSON string."""
        return json.dumps(asdict(self))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@dataclass
class StatusReporter:
    """Builds and writes status snapshots.

    Parameters
    ----------
    model:
        Clock model providing ``now()`` and the synchronized flag.
    controller:
        Controller providing state, counters and the last report.
    clock:
        Monotonic clock for uptime measurement (see :class:`ClockPort`).
    sink:
        Destination for serialised snapshots.
    """

    model: ClockModel
    controller: SyncController
    clock: ClockPort
    sink: StatusSink = stdout_sink
    _start_time: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Capture the start time for uptime calculation."""
        self._start_time = self.clock.now()

    def snapshot(self, status: str = "online") -> ClockStatus:
        """Return the current status without writing it."""
        report = self.controller.last_report
        return ClockStatus(
            status=status,
            state=str(self.controller.state),
            synchronized=self.model.is_synchronized,
            extrapolating=self.model.is_extrapolating,
            now=self.model.now().isoformat(timespec="milliseconds"),
            server=self.controller.settings.server,
            uptime_s=self.clock.now() - self._start_time,
            sync_count=self.controller.sync_count,
            failure_count=self.controller.failure_count,
            last_outcome=str(report.outcome) if report is not None else None,
            last_correction_ms=report.correction_ms if report is not None else None,
        )

    def publish(self) -> None:
        """Write an ``"online"`` snapshot to the sink."""
        self._safe_write(self.snapshot())

    def shutdown(self) -> None:
        """Write a final ``"offline"`` snapshot."""
        logger.info("Status reporter shutting down — publishing offline")
        self._safe_write(self.snapshot(status="offline"))

    def _safe_write(self, status: ClockStatus) -> None:
        """Write to the sink, swallowing any exceptions."""
        try:
            self.sink(status.to_json())
        except Exception:
            logger.exception("Failed to write clock status")
