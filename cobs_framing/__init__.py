# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
COBS framing - Python library for zero-delimited byte streams.

This package provides Consistent Overhead Byte Stuffing encode/decode,
an incremental decoder for chunked transports, and a serial link that
ties them to a USB CDC / UART port.

Example usage:
    from cobs_framing import SerialLink, cobs_encode, cobs_decode

    assert cobs_decode(cobs_encode(b"\\x11\\x00")) == b"\\x11\\x00"

    with SerialLink("/dev/ttyACM0") as link:
        link.frames.subscribe(lambda payload: print(payload.hex()))
        link.start()
        link.send(b"\\x01\\x00\\x02")
"""

from .channel import Channel, Subscription
from .cobs import (
    DELIMITER,
    MAX_BLOCK_DATA,
    OVERHEAD_MAX,
    CobsDecodeError,
    cobs_decode,
    cobs_encode,
    cobs_frame,
)
from .stream import (
    ErrorPolicy,
    FrameError,
    FrameErrorKind,
    StreamingDecoder,
    iter_frames,
)
from .transport import (
    SerialLink,
    TransportError,
    TimeoutError,
)

__version__ = "0.1.0"

__all__ = [
    # COBS
    "DELIMITER",
    "MAX_BLOCK_DATA",
    "OVERHEAD_MAX",
    "CobsDecodeError",
    "cobs_encode",
    "cobs_decode",
    "cobs_frame",
    # Streaming
    "ErrorPolicy",
    "FrameError",
    "FrameErrorKind",
    "StreamingDecoder",
    "iter_frames",
    # Channels
    "Channel",
    "Subscription",
    # Transport
    "SerialLink",
    "TransportError",
    "TimeoutError",
]
