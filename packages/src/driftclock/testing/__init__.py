"""Public test-support utilities for driftclock.

Re-exports test doubles and factories so that consumer test suites
can import everything from a single ``driftclock.testing`` namespace
instead of reaching into private modules.

Provided symbols:

- :class:`ClockHarness` — ClockService wired with test doubles.
- :class:`FakeClock` — deterministic monotonic clock.
- :class:`MockNtpTransport` — in-memory NTP double that records calls.
- :class:`StaticReachability` — fixed reachability answer.
- :func:`make_settings` — factory for ``Settings`` without ``.env`` files.
"""

from driftclock._reachability import StaticReachability
from driftclock._transport import MockNtpTransport
from driftclock.testing._clock import FakeClock
from driftclock.testing._harness import FIXED_WALL_TIME, ClockHarness
from driftclock.testing._settings import make_settings

__all__ = [
    "FIXED_WALL_TIME",
    "ClockHarness",
    "FakeClock",
    "MockNtpTransport",
    "StaticReachability",
    "make_settings",
]
