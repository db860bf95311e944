"""Synchronization controller — one NTP attempt at a time, on a schedule.

The controller owns every write to the :class:`~driftclock._model.ClockModel`.
Attempts come from three places:

- the periodic loop started by :meth:`SyncController.start`,
- fire-and-forget triggers (:meth:`SyncController.request_sync`) raised
  by resume / focus / network events,
- direct awaits of :meth:`SyncController.synchronize`.

All of them go through the same guard: while one attempt is in flight
every other request is rejected with outcome ``skipped``.  Requests are
never queued and never run in parallel, so there is at most one network
exchange and one anchor update at any time.

State machine::

    idle ──synchronize()──▶ in_flight ──done──▶ idle
      │                         │
      └────────stop()───────────┴──────────▶ stopped (terminal)

Sync failures never escape: they invalidate the model, are logged, and
come back as a :class:`~driftclock._errors.SyncReport`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from enum import StrEnum

from driftclock._clock import WallClock
from driftclock._errors import (
    SyncError,
    SyncOutcome,
    SyncReport,
    UnreachableError,
    build_sync_report,
    error_type_of,
)
from driftclock._model import ClockModel, SyncState
from driftclock._reachability import ReachabilityPort, StaticReachability
from driftclock._settings import NtpSettings
from driftclock._transport import NtpTransportPort

logger = logging.getLogger(__name__)


class ControllerState(StrEnum):
    """Lifecycle state of a :class:`SyncController`."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    STOPPED = "stopped"


class SyncController:
    """Serializes NTP synchronization attempts and drives the re-sync loop.

    Args:
        model: The clock model this controller keeps in sync.
        transport: NTP transport performing the network exchange.
        settings: Server, timeout and interval.  Already validated by
            pydantic, so a controller can never hold a non-positive
            timeout or interval.
        reachability: Connectivity check run before every attempt.
            Defaults to always reachable.
        clock: Optional wall clock for report timestamps.
    """

    def __init__(
        self,
        model: ClockModel,
        transport: NtpTransportPort,
        settings: NtpSettings,
        *,
        reachability: ReachabilityPort | None = None,
        clock: WallClock | None = None,
    ) -> None:
        self._model = model
        self._transport = transport
        self._settings = settings
        self._reachability = (
            reachability if reachability is not None else StaticReachability()
        )
        self._clock = clock
        self._state = ControllerState.IDLE
        self._stop_event = asyncio.Event()
        self._loop_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[SyncReport]] = set()
        self._request: asyncio.Future[datetime] | None = None
        self._last_report: SyncReport | None = None
        self._sync_count = 0
        self._failure_count = 0

    # -- Readers ------------------------------------------------------------

    @property
    def settings(self) -> NtpSettings:
        return self._settings

    @property
    def controller_state(self) -> ControllerState:
        return self._state

    @property
    def state(self) -> SyncState:
        """Model state, or ``SYNCHRONIZING`` while an attempt is in flight."""
        if self._state is ControllerState.IN_FLIGHT:
            return SyncState.SYNCHRONIZING
        return self._model.state

    @property
    def is_running(self) -> bool:
        """Whether the periodic loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def last_report(self) -> SyncReport | None:
        """Report of the most recent attempt that actually ran."""
        return self._last_report

    @property
    def sync_count(self) -> int:
        return self._sync_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    # -- Synchronization ----------------------------------------------------

    async def synchronize(self) -> SyncReport:
        """Run one synchronization attempt, unless one is already running.

        Returns:
            A report whose outcome is ``synchronized``, ``failed`` or
            ``unreachable`` when the attempt ran, ``skipped`` when
            another attempt was in flight, or ``stopped`` after
            :meth:`stop`.
        """
        server = self._settings.server
        if self._state is ControllerState.STOPPED:
            return self._report(SyncOutcome.STOPPED, message="Controller is stopped")
        if self._state is ControllerState.IN_FLIGHT:
            logger.debug("Synchronization already in flight — request skipped")
            return self._report(
                SyncOutcome.SKIPPED,
                message=f"Synchronization with {server!r} already in flight",
            )

        self._state = ControllerState.IN_FLIGHT
        try:
            return await self._attempt(server)
        finally:
            if self._state is ControllerState.IN_FLIGHT:
                self._state = ControllerState.IDLE

    async def _attempt(self, server: str) -> SyncReport:
        if not self._reachability.is_reachable():
            msg = "No network connection. Cannot synchronize NTP time."
            error = UnreachableError(msg)
            logger.warning(
                "%s",
                error,
                extra={"server": server, "error_type": error.error_type},
            )
            return self._record(self._report(SyncOutcome.UNREACHABLE, error=error))

        request = asyncio.ensure_future(
            self._transport.request_time(server, self._settings.timeout),
        )
        self._request = request
        try:
            timestamp = await request
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.info("NTP request to %s aborted by shutdown", server)
            return self._report(
                SyncOutcome.STOPPED,
                message=f"Request to {server!r} aborted by shutdown",
            )
        except SyncError as exc:
            return self._fail(server, exc)
        except Exception as exc:
            logger.exception("Unexpected error from NTP transport")
            return self._fail(server, exc)
        finally:
            self._request = None

        correction = self._model.accept(timestamp)
        correction_ms = correction.total_seconds() * 1000
        logger.info(
            "Time synchronized: %s | correction: %.2f ms",
            self._model.now().isoformat(timespec="milliseconds"),
            correction_ms,
            extra={"server": server, "correction_ms": correction_ms},
        )
        return self._record(
            self._report(SyncOutcome.SYNCHRONIZED, correction=correction),
        )

    def _fail(self, server: str, error: Exception) -> SyncReport:
        self._model.invalidate()
        logger.warning(
            "NTP synchronization failed: %s",
            error,
            extra={"server": server, "error_type": error_type_of(error)},
        )
        return self._record(self._report(SyncOutcome.FAILED, error=error))

    def _report(
        self,
        outcome: SyncOutcome,
        *,
        error: BaseException | None = None,
        correction: timedelta | None = None,
        message: str = "",
    ) -> SyncReport:
        return build_sync_report(
            outcome,
            server=self._settings.server,
            error=error,
            correction=correction,
            message=message,
            clock=self._clock,
        )

    def _record(self, report: SyncReport) -> SyncReport:
        self._last_report = report
        if report.ok:
            self._sync_count += 1
        else:
            self._failure_count += 1
        return report

    # -- Fire-and-forget triggers -------------------------------------------

    def request_sync(self, reason: str = "manual") -> asyncio.Task[SyncReport] | None:
        """Schedule an immediate attempt without waiting for it.

        The returned task is tracked by the controller and cancelled on
        :meth:`stop`; callers may await it but never have to.

        Returns:
            The scheduled task, or ``None`` once stopped.
        """
        if self._state is ControllerState.STOPPED:
            logger.debug("Ignoring %s sync request — controller stopped", reason)
            return None
        logger.info("NTP re-synchronization requested (%s)", reason)
        task = asyncio.create_task(self.synchronize(), name=f"driftclock-sync-{reason}")
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task[SyncReport]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background synchronization crashed: %s", exc)

    # -- Lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Start the periodic re-synchronization loop.

        Raises:
            RuntimeError: If the controller has been stopped.
        """
        if self._state is ControllerState.STOPPED:
            msg = "SyncController cannot be restarted after stop()"
            raise RuntimeError(msg)
        if self.is_running:
            logger.debug("SyncController.start() called while already running")
            return
        self._loop_task = asyncio.create_task(
            self._periodic_loop(),
            name="driftclock-periodic-sync",
        )

    async def stop(self) -> None:
        """Stop the loop, abort any in-flight request, and go terminal.

        Idempotent — safe to call multiple times.
        """
        if self._state is ControllerState.STOPPED:
            return
        self._state = ControllerState.STOPPED
        self._stop_event.set()
        if self._request is not None:
            self._request.cancel()

        tasks = list(self._background)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Task error during shutdown: %s", result)
        self._loop_task = None
        logger.info("NTP synchronization stopped")

    async def _periodic_loop(self) -> None:
        """Synchronize every ``sync_interval`` seconds until stopped.

        With ``sync_on_start`` the first attempt runs immediately;
        otherwise the loop waits one full interval first.
        """
        interval = self._settings.sync_interval
        logger.info(
            "Starting continuous NTP synchronization with %s every %.1fs",
            self._settings.server,
            interval,
        )
        if self._settings.sync_on_start:
            await self.synchronize()
        while not await self._wait(interval):
            await self.synchronize()
        logger.info("NTP synchronization loop stopped")

    async def _wait(self, seconds: float) -> bool:
        """Shutdown-aware sleep.

        Returns ``True`` (without exception) when shutdown is requested
        during the wait, ``False`` when the full interval elapsed.
        """
        try:
            async with asyncio.timeout(seconds):
                await self._stop_event.wait()
        except TimeoutError:
            return False
        return True
