"""Test harness wrapping ClockService with pre-configured test doubles.

Provides :class:`ClockHarness` — a one-liner setup for integration-style
tests that eliminates the boilerplate of creating ClockService,
MockNtpTransport, FakeClock, StaticReachability, Settings and an
``asyncio.Event`` individually.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Self

from driftclock._reachability import StaticReachability
from driftclock._service import ClockService
from driftclock._settings import Settings
from driftclock._transport import MockNtpTransport
from driftclock.testing._clock import FakeClock
from driftclock.testing._settings import make_settings

FIXED_WALL_TIME = datetime(2026, 1, 1, tzinfo=UTC)
"""Fallback time reported by harness services while unsynchronized."""


@dataclass
class ClockHarness:
    """Test harness wrapping ClockService with pre-configured test doubles.

    Usage::

        harness = ClockHarness.create(timestamp=datetime(2030, 1, 1, tzinfo=UTC))
        await harness.service.synchronize_now()
        assert harness.service.now() == datetime(2030, 1, 1, tzinfo=UTC)
    """

    service: ClockService
    transport: MockNtpTransport
    clock: FakeClock
    reachability: StaticReachability
    settings: Settings
    shutdown_event: asyncio.Event
    status_lines: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        *,
        timestamp: datetime | None = None,
        reachable: bool = True,
        **settings_overrides: Any,
    ) -> Self:
        """Create a harness with fresh test doubles.

        Args:
            timestamp: Reply served by the mock transport once its
                queue is empty.  ``None`` makes every request time out.
            reachable: Initial reachability answer.
            **settings_overrides: Forwarded to :func:`make_settings`.
        """
        transport = MockNtpTransport(timestamp=timestamp)
        clock = FakeClock()
        reachability = StaticReachability(reachable)
        settings = make_settings(**settings_overrides)
        status_lines: list[str] = []
        service = ClockService(
            settings,
            transport=transport,
            reachability=reachability,
            clock=clock,
            wall_clock=lambda: FIXED_WALL_TIME,
            status_sink=status_lines.append,
        )
        return cls(
            service=service,
            transport=transport,
            clock=clock,
            reachability=reachability,
            settings=settings,
            shutdown_event=asyncio.Event(),
            status_lines=status_lines,
        )

    async def run(self) -> None:
        """Run ``run_async`` with the harness's shutdown event."""
        await self.service.run_async(shutdown_event=self.shutdown_event)

    def trigger_shutdown(self) -> None:
        """Signal the shutdown event."""
        self.shutdown_event.set()
