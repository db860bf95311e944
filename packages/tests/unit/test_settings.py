"""Unit tests for driftclock._settings — configuration models.

Test Techniques Used:
    - Specification-based Testing: Default values and field
      constraints
    - Boundary Value Analysis: timeout, interval and port ranges
    - Environment Override: monkeypatch for env var injection
    - Validation Error: pydantic constraint violations
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from driftclock._settings import (
    LoggingSettings,
    NtpSettings,
    Settings,
    StatusSettings,
)
from driftclock.testing import make_settings


class TestNtpSettingsDefaults:
    """Verify all NTP default values.

    Technique: Specification-based Testing.
    """

    def test_server_defaults_to_google(self) -> None:
        """Default server is time.google.com."""
        assert NtpSettings().server == "time.google.com"

    def test_port_defaults_to_123(self) -> None:
        """Default port is the NTP port."""
        assert NtpSettings().port == 123

    def test_timeout_defaults_to_5(self) -> None:
        """Default request timeout is 5 seconds."""
        assert NtpSettings().timeout == 5.0

    def test_sync_interval_defaults_to_60(self) -> None:
        """Default re-sync interval is 60 seconds."""
        assert NtpSettings().sync_interval == 60.0

    def test_sync_on_start_defaults_to_true(self) -> None:
        """The first sync happens immediately by default."""
        assert NtpSettings().sync_on_start is True

    def test_probe_host_defaults_to_server(self) -> None:
        """The route check targets the NTP server unless overridden."""
        assert NtpSettings(server="10.0.0.5").probe_host == "10.0.0.5"

    def test_probe_host_override(self) -> None:
        settings = NtpSettings(server="ntp.lan", reachability_probe="10.0.0.1")
        assert settings.probe_host == "10.0.0.1"


class TestNtpSettingsValidation:
    """Field constraint validation for NtpSettings.

    Technique: Boundary Value Analysis.
    """

    @pytest.mark.parametrize("timeout", [0, -1, 10.5])
    def test_invalid_timeout_rejected(self, timeout: float) -> None:
        """Timeout must be positive and at most 10 seconds."""
        with pytest.raises(ValidationError):
            NtpSettings(timeout=timeout)

    @pytest.mark.parametrize("interval", [0, -5, 3601])
    def test_invalid_interval_rejected(self, interval: float) -> None:
        """Interval must be positive and at most one hour."""
        with pytest.raises(ValidationError):
            NtpSettings(sync_interval=interval)

    def test_small_positive_values_accepted(self) -> None:
        """Sub-second values are valid (used by tests and LAN setups)."""
        s = NtpSettings(timeout=0.05, sync_interval=0.01)
        assert s.timeout == 0.05
        assert s.sync_interval == 0.01

    def test_upper_bounds_accepted(self) -> None:
        """The documented maxima are inclusive."""
        s = NtpSettings(timeout=10, sync_interval=3600)
        assert s.timeout == 10
        assert s.sync_interval == 3600

    def test_empty_server_rejected(self) -> None:
        """An empty hostname is a configuration error."""
        with pytest.raises(ValidationError):
            NtpSettings(server="")

    @pytest.mark.parametrize("port", [0, 65536])
    def test_invalid_port_rejected(self, port: int) -> None:
        """Port must be within 1-65535."""
        with pytest.raises(ValidationError):
            NtpSettings(port=port)


class TestLoggingSettings:
    """Logging defaults and validation.

    Technique: Specification-based Testing.
    """

    def test_defaults(self) -> None:
        """INFO, json, stderr only, 3 backups."""
        s = LoggingSettings()
        assert s.level == "INFO"
        assert s.format == "json"
        assert s.file is None
        assert s.backup_count == 3

    def test_invalid_level_rejected(self) -> None:
        """Unknown level names are rejected."""
        with pytest.raises(ValidationError):
            LoggingSettings(level="VERBOSE")  # type: ignore[arg-type]

    def test_invalid_format_rejected(self) -> None:
        """Unknown formats are rejected."""
        with pytest.raises(ValidationError):
            LoggingSettings(format="xml")  # type: ignore[arg-type]


class TestStatusSettings:
    """Status output settings.

    Technique: Boundary Value Analysis.
    """

    def test_disabled_by_default(self) -> None:
        """No status lines unless an interval is set."""
        assert StatusSettings().interval is None

    def test_zero_interval_rejected(self) -> None:
        """A zero interval is invalid."""
        with pytest.raises(ValidationError):
            StatusSettings(interval=0)


class TestSettingsComposition:
    """Root settings composition.

    Technique: Specification-based Testing.
    """

    def test_nested_models(self) -> None:
        """Root settings contain the three sub-models."""
        s = make_settings()
        assert isinstance(s.ntp, NtpSettings)
        assert isinstance(s.logging, LoggingSettings)
        assert isinstance(s.status, StatusSettings)


class TestSettingsFromEnv:
    """Environment variable loading.

    Technique: Environment Override via monkeypatch.
    """

    def test_ntp_server_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """DRIFTCLOCK_NTP__SERVER sets ntp.server."""
        monkeypatch.setenv("DRIFTCLOCK_NTP__SERVER", "pool.ntp.org")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.ntp.server == "pool.ntp.org"

    def test_interval_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """DRIFTCLOCK_NTP__SYNC_INTERVAL sets ntp.sync_interval."""
        monkeypatch.setenv("DRIFTCLOCK_NTP__SYNC_INTERVAL", "300")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.ntp.sync_interval == 300.0

    def test_unprefixed_variables_ignored(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Variables without the prefix do not leak in."""
        monkeypatch.setenv("NTP__SERVER", "wrong.example")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.ntp.server == "time.google.com"

    def test_invalid_env_value_fails_loudly(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A non-positive timeout from the environment is fatal."""
        monkeypatch.setenv("DRIFTCLOCK_NTP__TIMEOUT", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_make_settings_ignores_env(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """The test factory sees only defaults and overrides."""
        monkeypatch.setenv("DRIFTCLOCK_NTP__SERVER", "pool.ntp.org")
        assert make_settings().ntp.server == "time.google.com"
