"""NTP wire codec — request packet and transmit-timestamp decoding.

Only the minimum of RFC 5905 needed for a single-shot client query:

- The request is 48 bytes; the first byte packs LI=0, VN=3, Mode=3
  (``0x1B``), everything else is zero.
- The reply's *transmit timestamp* lives at bytes 40–47: a big-endian
  32-bit count of seconds since the NTP epoch followed by a 32-bit
  binary fraction of a second.

Decoded timestamps are truncated to millisecond resolution and returned
as aware datetimes in the local timezone.
"""

from __future__ import annotations

import struct
from datetime import UTC, datetime, timedelta

from driftclock._errors import ProtocolError

NTP_PACKET_SIZE = 48
NTP_CLIENT_MODE = 0x1B
NTP_PORT = 123
NTP_EPOCH = datetime(1900, 1, 1, tzinfo=UTC)

_TRANSMIT_OFFSET = 40
_TRANSMIT_FORMAT = struct.Struct("!II")
_FRACTION_SCALE = 2**32


def encode_request() -> bytes:
    """Return a 48-byte client-mode NTP request."""
    packet = bytearray(NTP_PACKET_SIZE)
    packet[0] = NTP_CLIENT_MODE
    return bytes(packet)


def ntp_milliseconds(seconds: int, fraction: int) -> int:
    """Convert an NTP ``(seconds, fraction)`` pair to whole milliseconds."""
    return seconds * 1000 + (fraction * 1000) // _FRACTION_SCALE


def decode_reply(data: bytes | bytearray | memoryview) -> datetime:
    """Decode the transmit timestamp of an NTP reply.

    Args:
        data: The raw datagram received from the server.

    Returns:
        The server's transmit time as an aware, local-time datetime.

    Raises:
        ProtocolError: If *data* is not a byte buffer, is shorter than
            48 bytes, or carries an all-zero transmit timestamp.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"NTP reply must be bytes, got {type(data).__name__}"
        raise ProtocolError(msg)
    if len(data) < NTP_PACKET_SIZE:
        msg = f"NTP reply too short: {len(data)} bytes (expected {NTP_PACKET_SIZE})"
        raise ProtocolError(msg)

    seconds, fraction = _TRANSMIT_FORMAT.unpack_from(data, _TRANSMIT_OFFSET)
    if seconds == 0 and fraction == 0:
        msg = "NTP reply has no transmit timestamp"
        raise ProtocolError(msg)

    milliseconds = ntp_milliseconds(seconds, fraction)
    return (NTP_EPOCH + timedelta(milliseconds=milliseconds)).astimezone()
