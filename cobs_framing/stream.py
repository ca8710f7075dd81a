# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Incremental COBS decoder for continuous byte streams.

The stream carries ``EncodedFrame || 0x00`` units. Chunks handed to
:meth:`StreamingDecoder.feed` may split frames and blocks anywhere; every
0x00 on the wire is a frame delimiter.

Example usage:
    decoder = StreamingDecoder(sink=handle_payload)
    while True:
        decoder.feed(port.read(64))
"""

import logging
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional

from .cobs import DELIMITER, OVERHEAD_MAX, CobsDecodeError

logger = logging.getLogger(__name__)


class ErrorPolicy(Enum):
    """What to do with a frame cut short by a delimiter."""
    RESYNC = "resync"
    PARTIAL = "partial"
    STRICT = "strict"

    def __str__(self) -> str:
        return self.value


class FrameErrorKind(Enum):
    """Frame error kinds."""
    PREMATURE_DELIMITER = "premature delimiter"
    TRUNCATED = "truncated"

    def __str__(self) -> str:
        return self.value


class FrameError(CobsDecodeError):
    """
    A frame could not be decoded.

    Delivered to ``on_error`` callbacks, and raised by
    :meth:`StreamingDecoder.feed` under :attr:`ErrorPolicy.STRICT`.

    Attributes:
        kind: What went wrong
        partial: Payload bytes reconstructed before the error
        remainder: Bytes of the chunk not yet processed when raised
        frames: Frames completed earlier in the same chunk when raised
    """

    def __init__(self, kind: FrameErrorKind, partial: bytes = b"",
                 remainder: bytes = b"", frames: Optional[List[bytes]] = None):
        super().__init__(f"COBS frame error: {kind} after {len(partial)} bytes")
        self.kind = kind
        self.partial = partial
        self.remainder = remainder
        self.frames = list(frames or [])


class StreamingDecoder:
    """
    Stateful COBS decoder fed with arbitrarily sized chunks.

    Not safe for concurrent feeding: drive it from a single reader.

    Args:
        sink: Optional callback(payload) invoked for each decoded frame
        on_error: Optional callback(FrameError) for malformed frames
        policy: Handling of frames cut short by a delimiter
    """

    def __init__(
        self,
        sink: Optional[Callable[[bytes], None]] = None,
        on_error: Optional[Callable[[FrameError], None]] = None,
        policy: ErrorPolicy = ErrorPolicy.RESYNC,
    ):
        self._sink = sink
        self._on_error = on_error
        self.policy = ErrorPolicy(policy)
        self.frame_count = 0
        self.error_count = 0
        self._buffer = bytearray()
        self._overhead = OVERHEAD_MAX
        self._copy = 0

    @property
    def overhead(self) -> int:
        """Last overhead byte read (0xFF when idle)."""
        return self._overhead

    @property
    def copy(self) -> int:
        """Data bytes still expected in the current block."""
        return self._copy

    @property
    def pending(self) -> int:
        """Number of payload bytes accumulated for the frame in flight."""
        return len(self._buffer)

    @property
    def in_frame(self) -> bool:
        """True while a frame has started but not been delimited."""
        return bool(self._buffer) or self._overhead != OVERHEAD_MAX or self._copy != 0

    def reset(self) -> int:
        """
        Discard any in-flight partial frame.

        Returns:
            Number of accumulated bytes discarded
        """
        discarded = len(self._buffer)
        self._buffer = bytearray()
        self._overhead = OVERHEAD_MAX
        self._copy = 0
        return discarded

    def close(self) -> None:
        """Drop an undelimited frame when the link goes away. Never raises."""
        if not self.in_frame:
            return
        partial = bytes(self._buffer)
        self.reset()
        logger.debug("Discarding truncated frame (%d bytes)", len(partial))
        self.error_count += 1
        if self._on_error:
            self._on_error(FrameError(FrameErrorKind.TRUNCATED, partial))

    def feed(self, chunk) -> List[bytes]:
        """
        Consume a chunk of wire bytes.

        Each 0x00 that ends a frame emits one payload. A 0x00 received while
        idle (consecutive delimiters, or a leading one flushing the line)
        emits nothing; an empty payload is sent as 01 00.

        Args:
            chunk: Received bytes; may start or end anywhere in a frame

        Returns:
            Payloads of the frames completed by this chunk, in wire order

        Raises:
            FrameError: Under ErrorPolicy.STRICT, on a malformed frame; frames
                completed earlier in the chunk are in FrameError.frames
        """
        data = bytes(chunk)
        frames = []
        end = len(data)
        i = 0

        while i < end:
            if self._copy:
                run = min(self._copy, end - i)
                zero = data.find(DELIMITER, i, i + run)
                if zero < 0:
                    self._buffer += data[i:i + run]
                    self._copy -= run
                    i += run
                    continue

                # Delimiter inside a block: the frame was cut short
                self._buffer += data[i:zero]
                i = zero + 1
                self._frame_error(data[i:], frames)
                continue

            byte = data[i]
            i += 1

            if byte == DELIMITER:
                if self.in_frame:
                    self._emit(bytes(self._buffer), frames)
                continue

            if self._overhead != OVERHEAD_MAX:
                self._buffer.append(0)
            self._overhead = byte
            self._copy = byte - 1

        return frames

    def _emit(self, payload: bytes, frames: List[bytes]) -> None:
        self.reset()
        self.frame_count += 1
        frames.append(payload)
        if self._sink:
            self._sink(payload)

    def _frame_error(self, remainder: bytes, frames: List[bytes]) -> None:
        partial = bytes(self._buffer)
        self.error_count += 1

        if self.policy is ErrorPolicy.PARTIAL:
            self._emit(partial, frames)
        else:
            self.reset()

        if self.policy is ErrorPolicy.STRICT:
            raise FrameError(FrameErrorKind.PREMATURE_DELIMITER, partial,
                             remainder, frames)

        if self.policy is ErrorPolicy.RESYNC:
            logger.warning(
                "Discarding malformed frame: delimiter inside block after %d bytes",
                len(partial),
            )
        if self._on_error:
            self._on_error(FrameError(FrameErrorKind.PREMATURE_DELIMITER, partial))


def iter_frames(
    chunks: Iterable[bytes],
    policy: ErrorPolicy = ErrorPolicy.RESYNC,
) -> Iterator[bytes]:
    """
    Lazily yield decoded frames from an iterable of chunks.

    A partial frame left over when the chunks run out is discarded. Under
    ErrorPolicy.STRICT the frames preceding a malformed one are yielded
    before the FrameError is raised.
    """
    decoder = StreamingDecoder(policy=policy)
    for chunk in chunks:
        try:
            frames = decoder.feed(chunk)
        except FrameError as e:
            yield from e.frames
            raise
        yield from frames
    decoder.close()
