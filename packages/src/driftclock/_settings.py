"""Application configuration via pydantic-settings.

Configuration is loaded from environment variables and/or ``.env``
files.  Every variable carries the ``DRIFTCLOCK_`` prefix, and nested
models use ``__`` as the delimiter, e.g.
``DRIFTCLOCK_NTP__SERVER=pool.ntp.org``.

The schema covers three concerns:

* **NTP** — time server, per-request timeout, re-sync cadence.
* **Logging** — level, format, optional file sink, rotation.
* **Status** — optional periodic status lines.

All durations are in **seconds**.  Invalid values fail loudly at
construction with :class:`pydantic.ValidationError`.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from driftclock._codec import NTP_PORT

# -------------------------------------------------------------------
# Sub-models (BaseModel, NOT BaseSettings — nested via composition)
# -------------------------------------------------------------------


class NtpSettings(BaseModel):
    """NTP server and synchronization cadence.

    Environment variables (with ``__`` nesting)::

        DRIFTCLOCK_NTP__SERVER=time.google.com
        DRIFTCLOCK_NTP__TIMEOUT=5
        DRIFTCLOCK_NTP__SYNC_INTERVAL=60
    """

    server: Annotated[str, Field(min_length=1)] = Field(
        default="time.google.com",
        description="NTP server hostname or IP address.",
    )
    port: Annotated[int, Field(ge=1, le=65535)] = Field(
        default=NTP_PORT,
        description="NTP server UDP port.",
    )
    timeout: Annotated[float, Field(gt=0, le=10)] = Field(
        default=5.0,
        description=(
            "Maximum seconds to wait for the server's reply, covering "
            "name resolution, send and receive."
        ),
    )
    sync_interval: Annotated[float, Field(gt=0, le=3600)] = Field(
        default=60.0,
        description="Seconds between periodic re-synchronizations.",
    )
    sync_on_start: bool = Field(
        default=True,
        description=(
            "Synchronize immediately when the periodic loop starts. "
            "When false, the first periodic sync happens one full "
            "interval after start."
        ),
    )
    reachability_probe: str | None = Field(
        default=None,
        description=(
            "IP address whose route is checked before each attempt. "
            "``None`` checks the route to ``server``; hostnames skip "
            "the check."
        ),
    )

    @property
    def probe_host(self) -> str:
        """Host used for the pre-attempt route check."""
        return self.reachability_probe or self.server


class LoggingSettings(BaseModel):
    """Logging configuration.

    When ``file`` is set, logs are also written to a rotating file
    (size-based rotation, ``backup_count`` generations kept).  When
    ``None``, logs go to stderr only.

    The ``format`` field selects the output format:

    - ``"json"`` (default) — structured JSON lines, including the
      structured fields attached to sync events (``correction_ms``,
      ``server``, ``error_type``).
    - ``"text"`` — human-readable timestamped format for local
      development and direct terminal use.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level.",
    )
    format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: 'json' lines or 'text'.",
    )
    file: str | None = Field(
        default=None,
        description="Optional log file path. ``None`` means stderr only.",
    )
    max_file_size_mb: Annotated[int, Field(ge=1)] = Field(
        default=10,
        description=(
            "Maximum log file size in megabytes before rotation. "
            "Only applies when ``file`` is set."
        ),
    )
    backup_count: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Number of rotated log files to keep.",
    )


class StatusSettings(BaseModel):
    """Periodic status output.

    When ``interval`` is set, the service writes one JSON status line
    every ``interval`` seconds (stdout by default).
    """

    interval: Annotated[float, Field(gt=0)] | None = Field(
        default=None,
        description="Seconds between status lines. ``None`` disables them.",
    )


# -------------------------------------------------------------------
# Root settings
# -------------------------------------------------------------------


class Settings(BaseSettings):
    """Root settings for driftclock.

    Loaded from ``DRIFTCLOCK_``-prefixed environment variables with the
    nested delimiter ``__`` and an optional ``.env`` file in the
    working directory.

    Example ``.env``::

        DRIFTCLOCK_NTP__SERVER=pool.ntp.org
        DRIFTCLOCK_NTP__SYNC_INTERVAL=300
        DRIFTCLOCK_LOGGING__LEVEL=DEBUG
        DRIFTCLOCK_LOGGING__FORMAT=text
        DRIFTCLOCK_STATUS__INTERVAL=10
    """

    model_config = SettingsConfigDict(
        env_prefix="DRIFTCLOCK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ntp: NtpSettings = Field(
        default_factory=NtpSettings,
        description="NTP server and synchronization settings.",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration.",
    )
    status: StatusSettings = Field(
        default_factory=StatusSettings,
        description="Periodic status output.",
    )
