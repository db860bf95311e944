"""Clock service — the composition root.

:class:`ClockService` builds one clock model, one synchronization
controller, the lifecycle bridge and the status reporter from
:class:`~driftclock._settings.Settings`, and owns them for the life of
the process.  Consumers construct it explicitly and pass it to whatever
needs "now"; there is no global instance.

Typical usage::

    from driftclock import ClockService

    async with ClockService() as clock:
        ...
        stamp = clock.now()

or as a standalone daemon (blocks until SIGTERM / SIGINT)::

    ClockService().run()

Every collaborator can be injected for tests — pass a
:class:`~driftclock._transport.MockNtpTransport`, a
:class:`~driftclock.testing.FakeClock` and a manual
:class:`asyncio.Event` to run the whole lifecycle without real I/O.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from types import TracebackType
from typing import Self

from driftclock._clock import ClockPort, SystemClock, WallClock
from driftclock._controller import SyncController
from driftclock._errors import SyncReport
from driftclock._lifecycle import LifecycleBridge, LifecycleEvent
from driftclock._logging import configure_logging
from driftclock._model import ClockModel, SyncState
from driftclock._reachability import ReachabilityPort, RouteReachability
from driftclock._settings import Settings
from driftclock._status import ClockStatus, StatusReporter, StatusSink, stdout_sink
from driftclock._transport import NtpTransportPort, UdpNtpTransport

logger = logging.getLogger(__name__)


class ClockService:
    """Drift-corrected clock backed by periodic NTP synchronization.

    Args:
        settings: Configuration.  Loaded from the environment when
            ``None``; invalid values raise ``ValidationError`` here.
        transport: NTP transport.  Defaults to UDP on ``settings.ntp.port``.
        reachability: Connectivity check.  Defaults to a route lookup
            towards the NTP server (see ``NtpSettings.reachability_probe``).
        clock: Monotonic clock for extrapolation and uptime.
        wall_clock: Fallback time source while unsynchronized.
        status_sink: Destination for status lines.  Defaults to stdout.
        name: Service name used in logs.
        version: Service version used in logs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: NtpTransportPort | None = None,
        reachability: ReachabilityPort | None = None,
        clock: ClockPort | None = None,
        wall_clock: WallClock | None = None,
        status_sink: StatusSink | None = None,
        name: str = "driftclock",
        version: str = "",
    ) -> None:
        self._settings = settings if settings is not None else Settings()
        self._name = name
        self._version = version
        resolved_clock = clock if clock is not None else SystemClock()

        self._model = ClockModel(clock=resolved_clock, wall_clock=wall_clock)
        self._controller = SyncController(
            self._model,
            (
                transport
                if transport is not None
                else UdpNtpTransport(port=self._settings.ntp.port)
            ),
            self._settings.ntp,
            reachability=(
                reachability
                if reachability is not None
                else RouteReachability(
                    probe_host=self._settings.ntp.probe_host,
                    probe_port=self._settings.ntp.port,
                )
            ),
        )
        self._bridge = LifecycleBridge(self._model, self._controller)
        self._status = StatusReporter(
            self._model,
            self._controller,
            resolved_clock,
            sink=status_sink if status_sink is not None else stdout_sink,
        )
        self._status_task: asyncio.Task[None] | None = None
        self._started = False

    # -- Components ---------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def model(self) -> ClockModel:
        return self._model

    @property
    def controller(self) -> SyncController:
        return self._controller

    @property
    def bridge(self) -> LifecycleBridge:
        return self._bridge

    # -- Consumer surface ---------------------------------------------------

    def now(self) -> datetime:
        """Best available current time.  Never raises, never blocks."""
        return self._model.now()

    @property
    def is_synchronized(self) -> bool:
        """Whether the last completed attempt succeeded.

        Stays true across a pause boundary even though ``now()`` then
        reports system time until the next sync; check
        :attr:`is_extrapolating` for whether an anchor is live.
        """
        return self._model.is_synchronized

    @property
    def is_extrapolating(self) -> bool:
        """Whether ``now()`` is currently derived from an NTP anchor."""
        return self._model.is_extrapolating

    @property
    def state(self) -> SyncState:
        return self._controller.state

    async def synchronize_now(self) -> SyncReport:
        """Run an out-of-band attempt and return its report.

        ``report.performed`` is false when another attempt was already
        in flight or the service has stopped.
        """
        logger.info("Manual NTP re-synchronization")
        return await self._controller.synchronize()

    def dispatch(self, event: LifecycleEvent | str) -> asyncio.Task[SyncReport] | None:
        """Forward a host lifecycle event (pause, resume, focus, network)."""
        return self._bridge.dispatch(event)

    def status(self) -> ClockStatus:
        """Current status snapshot."""
        return self._status.snapshot()

    # -- Lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Start periodic synchronization and, if enabled, status output."""
        await self._controller.start()
        self._status_task = self._start_status_task()
        self._started = True

    async def stop(self) -> None:
        """Stop everything.  Idempotent; the service cannot be restarted."""
        if self._status_task is not None:
            self._status_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._status_task
            self._status_task = None
        await self._controller.stop()
        if self._started:
            self._started = False
            self._status.shutdown()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    def run(self, *, shutdown_event: asyncio.Event | None = None) -> None:
        """Run until shutdown (blocking, synchronous entrypoint).

        Wraps :meth:`run_async` in :func:`asyncio.run`, handling
        ``KeyboardInterrupt`` for clean Ctrl-C shutdown.
        """
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(self.run_async(shutdown_event=shutdown_event))

    async def run_async(self, *, shutdown_event: asyncio.Event | None = None) -> None:
        """Full daemon lifecycle.

        1. Configure logging from settings.
        2. Install signal handlers (unless *shutdown_event* is given).
        3. Start synchronization and status output.
        4. Block until shutdown, then tear down.

        Args:
            shutdown_event: Override shutdown event (skip signal
                handlers).  Useful in tests to control shutdown timing.
        """
        configure_logging(
            self._settings.logging,
            service=self._name,
            version=self._version,
        )

        installed = shutdown_event is None
        if shutdown_event is None:
            shutdown_event = asyncio.Event()
            self._bridge.install_signal_handlers(shutdown_event)

        await self.start()
        try:
            await shutdown_event.wait()
        finally:
            if installed:
                self._bridge.remove_signal_handlers()
            await self.stop()

        logger.info("Shutdown complete")

    # -- Status output ------------------------------------------------------

    def _start_status_task(self) -> asyncio.Task[None] | None:
        """Start the periodic status task, if enabled.

        Returns ``None`` when ``status.interval`` is ``None``.
        """
        interval = self._settings.status.interval
        if interval is None:
            return None
        return asyncio.create_task(self._status_loop(interval))

    async def _status_loop(self, interval: float) -> None:
        """Write a status line immediately, then every *interval* seconds."""
        while True:
            self._status.publish()
            await asyncio.sleep(interval)
