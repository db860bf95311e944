"""NTP transport port and adapters.

Provides NtpTransportPort (Protocol) and two implementations:

- UdpNtpTransport — real asyncio UDP client
- MockNtpTransport — test double that records calls and replays replies

Design decisions:

- One deadline per attempt: ``asyncio.timeout`` wraps resolution, send
  and receive together, so nothing is left pending once it fires.
- The datagram endpoint is closed on every path (success, timeout,
  error, cancellation).
- Lower-level failures are translated into the :mod:`driftclock._errors`
  taxonomy; nothing else escapes ``request_time()``.
- This is the only place in driftclock that performs network I/O.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from driftclock._codec import NTP_PORT, decode_reply, encode_request
from driftclock._errors import NetworkError, RequestTimeoutError, ResolutionError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Port (Protocol)
# ---------------------------------------------------------------------------


@runtime_checkable
class NtpTransportPort(Protocol):
    """Port contract for a single NTP request/response exchange."""

    async def request_time(self, server: str, timeout: float) -> datetime:
        """Query *server* and return its transmit timestamp.

        Raises:
            ResolutionError: *server* cannot be resolved.
            RequestTimeoutError: No reply within *timeout* seconds.
            NetworkError: Socket-level failure.
            ProtocolError: The reply is malformed.
        """
        ...


# ---------------------------------------------------------------------------
# Real adapter
# ---------------------------------------------------------------------------


class _ReplyProtocol(asyncio.DatagramProtocol):
    """Resolves *reply* with the first datagram received."""

    def __init__(self, reply: asyncio.Future[bytes]) -> None:
        self._reply = reply

    def datagram_received(self, data: bytes, addr: Any) -> None:  # noqa: ARG002
        if not self._reply.done():
            self._reply.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self._reply.done():
            self._reply.set_exception(NetworkError(f"UDP error: {exc}"))

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None and not self._reply.done():
            self._reply.set_exception(NetworkError(f"UDP connection lost: {exc}"))


@dataclass
class UdpNtpTransport:
    """Production NTP transport over asyncio UDP.

    Args:
        port: Server UDP port.  Only tests change the default.
    """

    port: int = NTP_PORT

    async def request_time(self, server: str, timeout: float) -> datetime:
        """Send one client-mode request to *server* and decode the reply."""
        try:
            async with asyncio.timeout(timeout):
                data = await self._exchange(server)
        except TimeoutError as exc:
            msg = f"The NTP request to {server!r} timed out"
            raise RequestTimeoutError(msg) from exc
        return decode_reply(data)

    async def _exchange(self, server: str) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                server,
                self.port,
                type=socket.SOCK_DGRAM,
                proto=socket.IPPROTO_UDP,
            )
        except (socket.gaierror, UnicodeError) as exc:
            msg = f"Cannot resolve NTP server {server!r}: {exc}"
            raise ResolutionError(msg) from exc
        if not infos:
            msg = f"No addresses found for NTP server {server!r}"
            raise ResolutionError(msg)

        family, _, _, _, address = infos[0]
        logger.debug("Querying NTP server %s at %s", server, address[0])

        reply: asyncio.Future[bytes] = loop.create_future()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _ReplyProtocol(reply),
                family=family,
                remote_addr=address,
            )
        except OSError as exc:
            msg = f"Cannot open UDP socket to {server!r}: {exc}"
            raise NetworkError(msg) from exc

        try:
            transport.sendto(encode_request())
            return await reply
        finally:
            transport.close()


# ---------------------------------------------------------------------------
# Mock / test-double adapter
# ---------------------------------------------------------------------------


@dataclass
class MockNtpTransport:
    """In-memory test double that records NTP requests.

    Each call pops the next entry from ``replies``: a ``datetime`` is
    returned, an exception is raised.  When ``replies`` is empty the
    fixed ``timestamp`` is returned.  Setting ``gate`` to an
    :class:`asyncio.Event` holds every request open until the event is
    set, which lets tests observe an in-flight attempt.
    """

    timestamp: datetime | None = None
    replies: deque[datetime | BaseException] = field(default_factory=deque)
    gate: asyncio.Event | None = None
    calls: list[tuple[str, float]] = field(default_factory=list)

    async def request_time(self, server: str, timeout: float) -> datetime:
        """Record the call and return (or raise) the next queued reply."""
        self.calls.append((server, timeout))
        if self.gate is not None:
            await self.gate.wait()
        if self.replies:
            reply = self.replies.popleft()
        elif self.timestamp is not None:
            reply = self.timestamp
        else:
            msg = f"The NTP request to {server!r} timed out"
            reply = RequestTimeoutError(msg)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    # -- Test helpers -------------------------------------------------------

    def queue(self, *replies: datetime | BaseException) -> None:
        """Append replies to be served in order."""
        self.replies.extend(replies)

    @property
    def call_count(self) -> int:
        """Number of recorded requests."""
        return len(self.calls)

    def reset(self) -> None:
        """Clear recorded calls and queued replies."""
        self.calls.clear()
        self.replies.clear()
