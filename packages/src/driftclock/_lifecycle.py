"""Lifecycle glue — host events in, clock actions out.

The clock core does not know where pause, resume, focus or network
notifications come from.  A host (GUI toolkit, game loop, service
manager, or the POSIX signal handlers installed here) reports them as
:class:`LifecycleEvent` values and the :class:`LifecycleBridge` maps
each one onto the model and controller:

====================  =====================================
Event                 Action
====================  =====================================
``paused``            drop the anchor (pause boundary)
``resumed``           immediate fire-and-forget re-sync
``focus_gained``      immediate fire-and-forget re-sync
``network_available`` immediate fire-and-forget re-sync
``focus_lost``        none
``network_lost``      none
====================  =====================================

POSIX mapping (``install_signal_handlers``)::

    SIGTERM, SIGINT  → shutdown event
    SIGCONT          → resumed
    SIGUSR1          → manual re-sync
"""

from __future__ import annotations

import asyncio
import logging
import signal
from enum import StrEnum

from driftclock._controller import SyncController
from driftclock._errors import SyncReport
from driftclock._model import ClockModel

logger = logging.getLogger(__name__)


class LifecycleEvent(StrEnum):
    """Host notifications the clock reacts to."""

    PAUSED = "paused"
    RESUMED = "resumed"
    FOCUS_GAINED = "focus_gained"
    FOCUS_LOST = "focus_lost"
    NETWORK_AVAILABLE = "network_available"
    NETWORK_LOST = "network_lost"


_RESYNC_EVENTS = frozenset(
    {
        LifecycleEvent.RESUMED,
        LifecycleEvent.FOCUS_GAINED,
        LifecycleEvent.NETWORK_AVAILABLE,
    }
)


class LifecycleBridge:
    """Routes lifecycle events to a clock model and its controller."""

    def __init__(self, model: ClockModel, controller: SyncController) -> None:
        self._model = model
        self._controller = controller
        self._signals: list[signal.Signals] = []

    def dispatch(self, event: LifecycleEvent | str) -> asyncio.Task[SyncReport] | None:
        """Handle *event*.

        Must be called from the event loop thread.  Re-sync events
        return the scheduled task (``None`` when the controller is
        stopped); other events return ``None``.
        """
        event = LifecycleEvent(event)
        if event is LifecycleEvent.PAUSED:
            self._model.pause()
            return None
        if event in _RESYNC_EVENTS:
            return self._controller.request_sync(str(event))
        logger.debug("Lifecycle event %s ignored", event)
        return None

    # -- POSIX signals ------------------------------------------------------

    def install_signal_handlers(
        self,
        shutdown_event: asyncio.Event,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Wire process signals into *shutdown_event* and :meth:`dispatch`."""
        loop = loop if loop is not None else asyncio.get_running_loop()
        handlers = {
            signal.SIGTERM: shutdown_event.set,
            signal.SIGINT: shutdown_event.set,
            signal.SIGCONT: lambda: self.dispatch(LifecycleEvent.RESUMED),
            signal.SIGUSR1: lambda: self._controller.request_sync("signal"),
        }
        for sig, handler in handlers.items():
            loop.add_signal_handler(sig, handler)
            self._signals.append(sig)

    def remove_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Undo :meth:`install_signal_handlers`."""
        loop = loop if loop is not None else asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()
