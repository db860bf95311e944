"""Network reachability port and adapters.

The controller asks "is the network reachable?" before every attempt so
that an offline host fails fast instead of waiting out the full NTP
timeout.

- RouteReachability — asks the kernel for a route to the NTP server,
  sends nothing
- StaticReachability — fixed answer, for tests and for callers that
  track connectivity themselves
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from driftclock._codec import NTP_PORT

logger = logging.getLogger(__name__)


@runtime_checkable
class ReachabilityPort(Protocol):
    """Answers whether outbound network traffic can currently be routed."""

    def is_reachable(self) -> bool: ...


@dataclass(frozen=True)
class RouteReachability:
    """Route lookup via a connected UDP socket.

    ``connect()`` on a datagram socket only selects a route and source
    address; no packet leaves the host.  A missing route (no interface
    up, no route to the server's network) makes it fail with
    ``ENETUNREACH``.

    The lookup needs a literal IP so that it never touches DNS.  When
    *probe_host* is a hostname the check is skipped and reports
    reachable; resolution failures then surface from the transport as
    :class:`~driftclock._errors.ResolutionError`.

    Args:
        probe_host: Address whose route is looked up, normally the NTP
            server itself.
        probe_port: Port used for the route lookup.
    """

    probe_host: str
    probe_port: int = NTP_PORT

    def is_reachable(self) -> bool:
        try:
            address = ipaddress.ip_address(self.probe_host)
        except ValueError:
            logger.debug("Route check skipped for hostname %s", self.probe_host)
            return True

        family = socket.AF_INET6 if address.version == 6 else socket.AF_INET
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.connect((self.probe_host, self.probe_port))
        except OSError as exc:
            logger.debug("No route to %s: %s", self.probe_host, exc)
            return False
        return True


@dataclass
class StaticReachability:
    """Reachability with a fixed, mutable answer."""

    reachable: bool = True

    def is_reachable(self) -> bool:
        return self.reachable
