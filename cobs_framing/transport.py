# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Serial transport for COBS-framed links.

Handles serial port communication with COBS framing: payloads are sent
as ``EncodedFrame || 0x00`` and received chunks are fed to a
:class:`StreamingDecoder`.
"""

import logging
import threading
import time
from collections import deque
from typing import List, Optional

import serial

from .channel import Channel
from .cobs import cobs_frame
from .stream import ErrorPolicy, FrameError, StreamingDecoder

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""
    pass


class TimeoutError(TransportError):
    """Timeout waiting for a frame."""
    pass


class SerialLink:
    """
    Serial (USB CDC / UART) link carrying COBS frames.

    Decoded frames are published on ``frames`` and frame errors on
    ``errors``. Frames can also be pulled with :meth:`receive`, unless the
    background reader started by :meth:`start` is running.

    Can be used as a context manager:
        with SerialLink("/dev/ttyACM0") as link:
            link.send(b"\\x01\\x02")
            reply = link.receive()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 1.0,
        policy: ErrorPolicy = ErrorPolicy.RESYNC,
    ):
        """
        Open the link.

        Args:
            port: Serial port path or pyserial URL (e.g., "/dev/ttyACM0", "loop://")
            baudrate: Baud rate (default 115200)
            timeout: Read timeout in seconds (default 1.0)
            policy: Handling of malformed frames
        """
        self.frames: Channel[bytes] = Channel("frames")
        self.errors: Channel[FrameError] = Channel("errors")
        self._decoder = StreamingDecoder(
            sink=self.frames.publish,
            on_error=self.errors.publish,
            policy=policy,
        )
        self._received = deque()
        self._backlog = b""
        self._write_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.reader_error: Optional[BaseException] = None

        self._ser = serial.serial_for_url(port, baudrate, timeout=timeout)
        time.sleep(0.1)  # Let the device settle

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def port(self) -> str:
        """Return the serial port name."""
        return self._ser.port

    @property
    def decoder(self) -> StreamingDecoder:
        """The stream decoder fed by this link."""
        return self._decoder

    @property
    def running(self) -> bool:
        """True while the background reader thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def close(self):
        """Stop the reader, close the serial connection, drop any partial frame."""
        self.stop()
        if self._ser and self._ser.is_open:
            self._ser.close()
        self._decoder.close()
        self._received.clear()
        self._backlog = b""

    def send(self, payload: bytes) -> None:
        """Encode payload, append the delimiter and transmit it."""
        data = cobs_frame(payload)
        with self._write_lock:
            try:
                self._ser.write(data)
                self._ser.flush()
            except serial.SerialException as e:
                raise TransportError(f"Write failed: {e}") from e

    def _read_chunk(self) -> bytes:
        """Read whatever is available, waiting up to the timeout for one byte."""
        if self._backlog:
            chunk, self._backlog = self._backlog, b""
            return chunk
        try:
            return self._ser.read(max(1, self._ser.in_waiting))
        except serial.SerialException as e:
            raise TransportError(f"Read failed: {e}") from e

    def poll(self) -> List[bytes]:
        """
        Read available bytes and decode them.

        Returns:
            Frames completed by the bytes read (possibly empty)

        Raises:
            TransportError: If the background reader is running
        """
        if self.running:
            raise TransportError("poll() not available while the reader thread runs")
        chunk = self._read_chunk()
        if chunk:
            self._received.extend(self._feed(chunk))
        frames = list(self._received)
        self._received.clear()
        return frames

    def _feed(self, chunk: bytes) -> List[bytes]:
        """Feed the decoder, keeping decoded frames and unprocessed bytes on a strict frame error."""
        try:
            return self._decoder.feed(chunk)
        except FrameError as e:
            self._received.extend(e.frames)
            self._backlog = e.remainder
            self.errors.publish(e)
            raise

    def receive(self) -> bytes:
        """
        Receive the next decoded frame.

        Raises:
            TimeoutError: If the port read times out before a frame completes
            TransportError: If the background reader is running
        """
        if self.running:
            raise TransportError("receive() not available while the reader thread runs")
        while not self._received:
            chunk = self._read_chunk()
            if not chunk:
                raise TimeoutError("Timeout waiting for frame")
            self._received.extend(self._feed(chunk))
        return self._received.popleft()

    def start(self) -> None:
        """Start a background thread that reads and decodes continuously."""
        if self.running:
            return
        self.reader_error = None
        self._running = True
        self._thread = threading.Thread(target=self._reader, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background reader thread."""
        if self._thread is None:
            return
        self._running = False
        self._thread.join(timeout=2.0)
        self._thread = None

    def _reader(self) -> None:
        """Background thread: read serial, COBS-decode, publish."""
        try:
            while self._running:
                try:
                    chunk = self._ser.read(max(1, self._ser.in_waiting))
                except serial.SerialException as e:
                    logger.debug("Serial read failed, stopping reader: %s", e)
                    self.reader_error = e
                    break
                while chunk:
                    try:
                        self._decoder.feed(chunk)
                        chunk = b""
                    except FrameError as e:
                        self.errors.publish(e)
                        chunk = e.remainder
        except Exception as e:
            # Raised by a frames or errors subscriber
            logger.exception("Reader stopped by a subscriber error")
            self.reader_error = e
        finally:
            self._running = False
