"""driftclock.

A drift-corrected clock for long-running asyncio processes, anchored to
an NTP server and extrapolated with a monotonic counter.
"""

from importlib.metadata import PackageNotFoundError, version

from driftclock._clock import ClockPort, SystemClock, WallClock, local_now
from driftclock._codec import (
    NTP_EPOCH,
    NTP_PACKET_SIZE,
    NTP_PORT,
    decode_reply,
    encode_request,
)
from driftclock._controller import ControllerState, SyncController
from driftclock._errors import (
    ClockError,
    NetworkError,
    ProtocolError,
    RequestTimeoutError,
    ResolutionError,
    SyncError,
    SyncOutcome,
    SyncReport,
    UnreachableError,
    build_sync_report,
)
from driftclock._lifecycle import LifecycleBridge, LifecycleEvent
from driftclock._logging import JsonFormatter, configure_logging
from driftclock._model import ClockAnchor, ClockModel, SyncState
from driftclock._reachability import (
    ReachabilityPort,
    RouteReachability,
    StaticReachability,
)
from driftclock._service import ClockService
from driftclock._settings import LoggingSettings, NtpSettings, Settings, StatusSettings
from driftclock._status import ClockStatus, StatusReporter
from driftclock._transport import MockNtpTransport, NtpTransportPort, UdpNtpTransport

try:
    __version__ = version("driftclock")
except PackageNotFoundError:
    # Last resort fallback for source checkouts without metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Service
    "ClockService",
    # Clock
    "ClockPort",
    "SystemClock",
    "WallClock",
    "local_now",
    # Model
    "ClockAnchor",
    "ClockModel",
    "SyncState",
    # Controller
    "ControllerState",
    "SyncController",
    # Lifecycle
    "LifecycleBridge",
    "LifecycleEvent",
    # Codec
    "NTP_EPOCH",
    "NTP_PACKET_SIZE",
    "NTP_PORT",
    "decode_reply",
    "encode_request",
    # Transport
    "MockNtpTransport",
    "NtpTransportPort",
    "UdpNtpTransport",
    # Reachability
    "ReachabilityPort",
    "RouteReachability",
    "StaticReachability",
    # Errors
    "ClockError",
    "NetworkError",
    "ProtocolError",
    "RequestTimeoutError",
    "ResolutionError",
    "SyncError",
    "SyncOutcome",
    "SyncReport",
    "UnreachableError",
    "build_sync_report",
    # Logging
    "JsonFormatter",
    "configure_logging",
    # Status
    "ClockStatus",
    "StatusReporter",
    # Settings
    "LoggingSettings",
    "NtpSettings",
    "Settings",
    "StatusSettings",
]
