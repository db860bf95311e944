"""Unit tests for driftclock.testing — public test-support utilities.

Test Techniques Used:
    - Specification-based Testing: Public API surface, ``__all__``
      completeness, factory defaults and overrides.
    - Identity Testing: Re-exported symbols are the *same* objects
      as the originals in their private modules.
    - Fixture Injection: Plugin-registered fixtures are automatically
      available without local definitions.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

import driftclock._reachability as _reachability_mod
import driftclock._transport as _transport_mod
import driftclock.testing as testing_mod
from driftclock._clock import ClockPort
from driftclock._errors import SyncOutcome
from driftclock._model import ClockModel
from driftclock._settings import NtpSettings, Settings
from driftclock._transport import MockNtpTransport
from driftclock.testing import (
    FIXED_WALL_TIME,
    ClockHarness,
    FakeClock,
    StaticReachability,
    make_settings,
)

NTP_TIME = datetime(2030, 6, 1, 12, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# TestPublicAPI — __all__ and importability
# ---------------------------------------------------------------------------


class TestPublicAPI:
    """All expected symbols are importable and listed in ``__all__``."""

    EXPECTED_NAMES = {
        "FIXED_WALL_TIME",
        "ClockHarness",
        "FakeClock",
        "MockNtpTransport",
        "StaticReachability",
        "make_settings",
    }

    def test_all_contains_expected_symbols(self) -> None:
        """``__all__`` matches the documented public API.

        Technique: Specification-based — verifying module contract.
        """
        assert set(testing_mod.__all__) == self.EXPECTED_NAMES

    def test_reexports_are_identical(self) -> None:
        """Re-exported doubles are the originals, not copies.

        Technique: Identity Testing.
        """
        assert testing_mod.MockNtpTransport is _transport_mod.MockNtpTransport
        assert testing_mod.StaticReachability is _reachability_mod.StaticReachability


# ---------------------------------------------------------------------------
# TestFakeClock
# ---------------------------------------------------------------------------


class TestFakeClock:
    """FakeClock: deterministic test double for ClockPort."""

    def test_satisfies_clock_port(self) -> None:
        """Technique: Protocol Conformance — runtime_checkable isinstance."""
        assert isinstance(FakeClock(), ClockPort)

    def test_advance_accumulates(self) -> None:
        clock = FakeClock(10.0)
        clock.advance(0.5)
        clock.advance(1.5)
        assert clock.now() == 12.0


# ---------------------------------------------------------------------------
# TestMakeSettings
# ---------------------------------------------------------------------------


class TestMakeSettings:
    """make_settings: isolated Settings factory."""

    def test_returns_settings_instance(self) -> None:
        assert isinstance(make_settings(), Settings)

    def test_overrides_forwarded(self) -> None:
        settings = make_settings(ntp=NtpSettings(server="ntp.test"))
        assert settings.ntp.server == "ntp.test"


# ---------------------------------------------------------------------------
# TestClockHarness
# ---------------------------------------------------------------------------


class TestClockHarness:
    """ClockHarness: ClockService wired with test doubles.

    Technique: Integration-style Testing — full service lifecycle
    without real I/O.
    """

    def test_create_wires_doubles(self) -> None:
        harness = ClockHarness.create(timestamp=NTP_TIME)

        assert isinstance(harness.transport, MockNtpTransport)
        assert harness.transport.timestamp == NTP_TIME
        assert harness.reachability.is_reachable() is True
        assert harness.service.now() == FIXED_WALL_TIME

    def test_create_unreachable(self) -> None:
        harness = ClockHarness.create(reachable=False)
        assert harness.reachability.is_reachable() is False

    async def test_synchronize_now(self) -> None:
        harness = ClockHarness.create(timestamp=NTP_TIME)

        report = await harness.service.synchronize_now()

        assert report.outcome is SyncOutcome.SYNCHRONIZED
        assert harness.service.now() == NTP_TIME
        harness.clock.advance(2.0)
        assert (harness.service.now() - NTP_TIME).total_seconds() == 2.0

    @pytest.mark.usefixtures("_restore_root_logger")
    async def test_run_and_shutdown(self) -> None:
        harness = ClockHarness.create(
            timestamp=NTP_TIME,
            ntp=NtpSettings(server="ntp.test", sync_interval=3600),
        )
        harness.trigger_shutdown()

        await harness.run()

        assert harness.transport.call_count <= 1
        statuses = [json.loads(line)["status"] for line in harness.status_lines]
        assert statuses[-1:] == ["offline"]


# ---------------------------------------------------------------------------
# TestPluginFixtures
# ---------------------------------------------------------------------------


class TestPluginFixtures:
    """Plugin fixtures are injected without local definitions.

    Technique: Fixture Injection.
    """

    def test_fake_clock_fixture(self, fake_clock: FakeClock) -> None:
        assert fake_clock.now() == 0.0

    def test_mock_transport_fixture(self, mock_transport: MockNtpTransport) -> None:
        assert mock_transport.call_count == 0
        assert mock_transport.timestamp is None

    def test_reachability_fixture(self, reachability: StaticReachability) -> None:
        assert reachability.is_reachable() is True

    def test_clock_model_fixture(self, clock_model: ClockModel) -> None:
        assert clock_model.now() == FIXED_WALL_TIME

    def test_clock_harness_fixture(self, clock_harness: ClockHarness) -> None:
        assert clock_harness.transport.timestamp is None
