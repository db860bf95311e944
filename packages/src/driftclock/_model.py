"""Clock model — authoritative anchor plus monotonic extrapolation.

The model holds at most one :class:`ClockAnchor`: the last timestamp
accepted from the NTP server, paired with the monotonic reading taken
at the moment it was accepted.  "Now" is derived as::

    anchor.timestamp + (clock.now() - anchor.reference)

When no anchor is live (never synchronized, invalidated after a failed
attempt, or dropped at a pause boundary) ``now()`` falls back to the
raw system time.  It never raises and never blocks.

The anchor is replaced wholesale by a single attribute assignment, so
readers on any thread see either the old anchor or the new one, never
a mix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from driftclock._clock import ClockPort, SystemClock, WallClock, local_now

logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    """Synchronization state as seen by readers.

    ``SYNCHRONIZING`` is only ever reported by the controller while an
    attempt is in flight; the model itself holds one of the other two.
    """

    UNSYNCHRONIZED = "unsynchronized"
    SYNCHRONIZED = "synchronized"
    SYNCHRONIZING = "synchronizing"


@dataclass(frozen=True, slots=True)
class ClockAnchor:
    """An accepted NTP timestamp and the monotonic time it was accepted at."""

    timestamp: datetime
    reference: float

    def extrapolate(self, monotonic_now: float) -> datetime:
        """Return the anchor timestamp advanced to *monotonic_now*."""
        return self.timestamp + timedelta(seconds=monotonic_now - self.reference)


class ClockModel:
    """Drift-corrected "current time".

    Args:
        clock: Monotonic clock used for elapsed time.  Defaults to
            :class:`~driftclock._clock.SystemClock`.
        wall_clock: Fallback time source used while no anchor is live.
            Defaults to the local system time.
    """

    def __init__(
        self,
        clock: ClockPort | None = None,
        wall_clock: WallClock | None = None,
    ) -> None:
        self._clock = clock if clock is not None else SystemClock()
        self._wall_clock = wall_clock if wall_clock is not None else local_now
        self._anchor: ClockAnchor | None = None
        self._state = SyncState.UNSYNCHRONIZED
        self._last_correction: timedelta | None = None

    # -- Readers ------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_synchronized(self) -> bool:
        return self._state is SyncState.SYNCHRONIZED

    @property
    def is_extrapolating(self) -> bool:
        """True when ``now()`` is derived from an anchor."""
        return self.is_synchronized and self._anchor is not None

    @property
    def anchor(self) -> ClockAnchor | None:
        return self._anchor

    @property
    def last_correction(self) -> timedelta | None:
        """Correction applied by the most recent ``accept()``."""
        return self._last_correction

    def now(self) -> datetime:
        """Return the best available current time."""
        anchor = self._anchor
        if anchor is None or self._state is not SyncState.SYNCHRONIZED:
            return self._wall_clock()
        return anchor.extrapolate(self._clock.now())

    # -- Writers ------------------------------------------------------------

    def accept(self, timestamp: datetime) -> timedelta:
        """Install *timestamp* as the new anchor.

        Returns:
            The correction: *timestamp* minus the time the model would
            have reported just before the swap.  Zero when there was no
            live anchor to extrapolate from.
        """
        reference = self._clock.now()
        previous = self._anchor
        if previous is not None and self._state is SyncState.SYNCHRONIZED:
            correction = timestamp - previous.extrapolate(reference)
        else:
            correction = timedelta(0)

        self._anchor = ClockAnchor(timestamp=timestamp, reference=reference)
        self._state = SyncState.SYNCHRONIZED
        self._last_correction = correction
        return correction

    def invalidate(self) -> None:
        """Drop the anchor and fall back to system time."""
        self._anchor = None
        self._state = SyncState.UNSYNCHRONIZED

    def pause(self) -> None:
        """Mark a pause boundary.

        Monotonic time is not trustworthy across a process or system
        suspend, so the anchor is dropped.  The state stays as it was;
        ``now()`` reports system time until the next ``accept()``.
        """
        if self._anchor is not None:
            logger.debug("Pause boundary — extrapolation suspended until next sync")
        self._anchor = None
