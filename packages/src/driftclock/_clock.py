"""Monotonic clock port and system adapter.

Provides ClockPort (Protocol) and SystemClock for measuring elapsed time
between NTP synchronizations.

**Why monotonic?** time.monotonic() is immune to NTP adjustments and
manual system-clock changes, making it suitable for extrapolating from
an authoritative timestamp.  The epoch is arbitrary — only *differences*
between now() calls are meaningful (PEP 418).

On Linux ``CLOCK_MONOTONIC`` does not advance while the system is
suspended, so elapsed readings taken across a suspend under-count real
time.  The clock model therefore never trusts an anchor across a pause;
see :meth:`driftclock._model.ClockModel.pause`.

Also provides :data:`WallClock`, the callable type used wherever a
calendar ``datetime`` is needed (fallback time, report timestamps).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable

type WallClock = Callable[[], datetime]
"""Callable returning the current wall-clock time as an aware datetime."""


def local_now() -> datetime:
    """Return the raw system time as an aware datetime in local time."""
    return datetime.now().astimezone()


@runtime_checkable
class ClockPort(Protocol):
    """Monotonic clock for elapsed-time measurements.

    The clock model pairs one reading of this clock with each accepted
    NTP timestamp and measures elapsed time against it.

    The default implementation wraps ``time.monotonic()``.  Tests
    inject a deterministic fake clock for reproducible timing.
    """

    def now(self) -> float:
        """Return monotonic time in seconds.

        Returns:
            A float representing seconds from an arbitrary epoch.
            Only the *difference* between two calls is meaningful.
        """
        ...


class SystemClock:
    """Production clock wrapping ``time.monotonic()``.

    Satisfies :class:`ClockPort` via structural subtyping — no
    base-class inheritance required (PEP 544).

    Usage::

        clock = SystemClock()
        start = clock.now()
        # ... some work ...
        elapsed = clock.now() - start
    """

    def now(self) -> float:
        """Return monotonic time in seconds."""
        return time.monotonic()
