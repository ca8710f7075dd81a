# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
BDD-style integration tests for COBS framing over a serial link.

These tests run over pyserial's loop:// loopback by default. To use a
real port with TX wired to RX:
Run with: pytest tests/test_integration.py -v --device /dev/ttyUSB0

Features tested:
- Frame exchange through a serial port
- Frames split across port reads
- Resynchronization after line noise
- Background reader delivery
"""

import random

import pytest

from cobs_framing.cobs import cobs_encode
from cobs_framing.stream import FrameErrorKind
from cobs_framing.transport import TimeoutError

pytestmark = pytest.mark.integration


class TestFrameExchange:
    """Feature: Exchange COBS frames over a serial link."""

    def test_send_and_receive(self, link):
        """Scenario: A sent payload is received unchanged."""
        link.send(b"\x11\x22\x00\x33")
        assert link.receive() == b"\x11\x22\x00\x33"

    def test_empty_payload(self, link):
        """Scenario: An empty payload is a valid frame."""
        link.send(b"")
        assert link.receive() == b""

    def test_frames_arrive_in_order(self, link):
        """Scenario: Several frames keep their order."""
        payloads = [b"\x00" * 3, bytes(range(1, 255)), b"end"]
        for payload in payloads:
            link.send(payload)
        assert [link.receive() for _ in payloads] == payloads

    def test_large_random_payloads(self, link):
        """Scenario: Payloads spanning many blocks survive the link."""
        rng = random.Random(7)
        for size in (253, 254, 255, 508, 1024, 4000):
            payload = bytes(rng.randrange(0, 4) * 0x55 for _ in range(size))
            link.send(payload)
            assert link.receive() == payload

    def test_no_frame_times_out(self, link):
        """Scenario: Waiting on a silent line times out."""
        with pytest.raises(TimeoutError):
            link.receive()


class TestResynchronization:
    """Feature: Recover from corrupted input on the wire."""

    def test_noise_before_frame(self, link):
        """Scenario: Stray delimiters on an idle line are ignored."""
        link._ser.write(b"\x00\x00\x00")
        link.send(b"hello")
        assert link.receive() == b"hello"

    def test_truncated_frame_is_dropped(self, link):
        """Scenario: A frame cut short by a delimiter is reported and skipped."""
        errors = []
        link.errors.subscribe(errors.append)

        link._ser.write(cobs_encode(b"truncated payload")[:6] + b"\x00")
        link.send(b"next")

        assert link.receive() == b"next"
        assert [e.kind for e in errors] == [FrameErrorKind.PREMATURE_DELIMITER]


class TestBackgroundReader:
    """Feature: Deliver frames from a background reader thread."""

    def test_reader_delivers_to_queue(self, link):
        """Scenario: Frames published by the reader reach a queue subscriber."""
        _, q = link.frames.subscribe_queue()
        link.start()

        for i in range(10):
            link.send(bytes([i, 0, i]))

        assert [q.get(timeout=2.0) for _ in range(10)] == [
            bytes([i, 0, i]) for i in range(10)
        ]
        link.stop()
