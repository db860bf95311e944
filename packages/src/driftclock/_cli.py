"""Command-line entrypoint for driftclock (Typer-based).

Provides :func:`build_cli` which constructs a Typer app with two modes:

- default — run the clock service until SIGTERM / SIGINT, logging every
  synchronization (and writing status lines when enabled);
- ``--once`` — perform a single NTP query, print the drift-corrected
  time as ISO 8601 on stdout and exit.

Options ``--server``, ``--timeout`` and ``--interval`` override the
matching ``DRIFTCLOCK_NTP__*`` settings and are validated with them.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import Annotated, Any, get_args

import typer
from pydantic import ValidationError

import driftclock
from driftclock._errors import SyncReport
from driftclock._logging import configure_logging
from driftclock._service import ClockService
from driftclock._settings import LoggingSettings, NtpSettings, Settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 3
EXIT_SYNC_FAILED = 4

# ---------------------------------------------------------------------------
# Allowed values (extracted from LoggingSettings Literal types)
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["level"].annotation,
)
_VALID_LOG_FORMATS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["format"].annotation,
)

NAME = "driftclock"


def _apply_overrides(
    settings: Settings,
    *,
    server: str | None,
    timeout: float | None,
    interval: float | None,
    log_level: str | None,
    log_format: str | None,
) -> Settings:
    """Return *settings* with CLI overrides applied and re-validated."""
    ntp_updates: dict[str, Any] = {}
    if server is not None:
        ntp_updates["server"] = server
    if timeout is not None:
        ntp_updates["timeout"] = timeout
    if interval is not None:
        ntp_updates["sync_interval"] = interval
    if ntp_updates:
        settings.ntp = NtpSettings.model_validate(
            {**settings.ntp.model_dump(), **ntp_updates},
        )

    if log_level is not None:
        settings.logging = settings.logging.model_copy(
            update={"level": log_level.upper()},
        )
    if log_format is not None:
        settings.logging = settings.logging.model_copy(
            update={"format": log_format.lower()},
        )
    return settings


async def _query_once(service: ClockService) -> SyncReport:
    """Synchronize once, then release the service."""
    try:
        return await service.synchronize_now()
    finally:
        await service.stop()


def build_cli() -> typer.Typer:
    """Construct the driftclock Typer CLI.

    Returns:
        A configured :class:`typer.Typer` ready to invoke.
    """
    cli = typer.Typer(
        help=f"{NAME} — drift-corrected clock synchronized over NTP.",
    )

    @cli.callback(invoke_without_command=True)
    def main(
        version_flag: Annotated[
            bool | None,
            typer.Option(
                "--version",
                is_eager=True,
                help="Show version and exit.",
            ),
        ] = None,
        once: Annotated[
            bool,
            typer.Option("--once", help="Query the server once, print the time, exit."),
        ] = False,
        server: Annotated[
            str | None,
            typer.Option("--server", help="NTP server hostname or address."),
        ] = None,
        timeout: Annotated[
            float | None,
            typer.Option("--timeout", help="Per-request timeout in seconds."),
        ] = None,
        interval: Annotated[
            float | None,
            typer.Option("--interval", help="Re-synchronization interval in seconds."),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Override log level."),
        ] = None,
        log_format: Annotated[
            str | None,
            typer.Option("--log-format", help="Override log format."),
        ] = None,
        env_file: Annotated[
            str,
            typer.Option("--env-file", help="Path to .env file."),
        ] = ".env",
    ) -> None:
        version = driftclock.__version__

        # -- version ---------------------------------------------------------
        if version_flag:
            typer.echo(f"{NAME} v{version}")
            raise typer.Exit()

        # -- validate enum-like options -------------------------------------
        if log_level is not None and log_level.upper() not in _VALID_LOG_LEVELS:
            raise typer.BadParameter(
                f"Invalid log level '{log_level}'. "
                f"Choose from: {', '.join(_VALID_LOG_LEVELS)}",
                param_hint="'--log-level'",
            )

        if log_format is not None and log_format.lower() not in _VALID_LOG_FORMATS:
            raise typer.BadParameter(
                f"Invalid log format '{log_format}'. "
                f"Choose from: {', '.join(_VALID_LOG_FORMATS)}",
                param_hint="'--log-format'",
            )

        # -- build settings -------------------------------------------------
        try:
            settings = Settings(_env_file=env_file)  # type: ignore[call-arg]
            settings = _apply_overrides(
                settings,
                server=server,
                timeout=timeout,
                interval=interval,
                log_level=log_level,
                log_format=log_format,
            )
        except ValidationError as exc:
            logger.error("Configuration error: %s", exc)
            raise SystemExit(EXIT_CONFIG_ERROR) from exc

        service = ClockService(settings, name=NAME, version=version)

        # -- single query ---------------------------------------------------
        if once:
            configure_logging(settings.logging, service=NAME, version=version)
            report = asyncio.run(_query_once(service))
            if not report.ok:
                raise SystemExit(EXIT_SYNC_FAILED)
            typer.echo(service.now().isoformat(timespec="milliseconds"))
            return

        # -- run the service ------------------------------------------------
        try:
            with contextlib.suppress(KeyboardInterrupt):
                asyncio.run(service.run_async())
        except SystemExit:
            raise
        except Exception as exc:
            logger.error("Runtime error: %s", exc)
            sys.exit(EXIT_RUNTIME_ERROR)

    return cli


def main() -> None:
    """Console-script entrypoint."""
    build_cli()(prog_name=NAME)
