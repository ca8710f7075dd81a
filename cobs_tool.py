#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
COBS framing tool: encode/decode frames and talk to a serial link.

Usage:
    python cobs_tool.py encode payload.bin > frame.bin
    python cobs_tool.py encode --hex --delimit < payload.txt
    python cobs_tool.py decode --strict frame.bin
    python cobs_tool.py --port /dev/ttyACM0 send 11220033
    python cobs_tool.py --port /dev/ttyACM0 monitor --count 10

Requirements:
    pip install pyserial
"""

import argparse
import logging
import sys
from pathlib import Path

import serial

from cobs_framing import (
    CobsDecodeError,
    ErrorPolicy,
    FrameError,
    SerialLink,
    TimeoutError,
    TransportError,
    cobs_decode,
    cobs_encode,
)


def read_input(path, as_hex: bool) -> bytes:
    """Read raw bytes (or hex text) from a file, or stdin if no path."""
    if path is None:
        data = sys.stdin.buffer.read()
    else:
        data = Path(path).read_bytes()
    if as_hex:
        return bytes.fromhex(data.decode("ascii"))
    return data


def write_output(data: bytes, as_hex: bool):
    """Write bytes to stdout, as hex text if requested."""
    if as_hex:
        print(data.hex())
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def cmd_encode(args):
    """Encode a payload into a COBS frame."""
    encoded = cobs_encode(read_input(args.file, args.hex))
    if args.delimit:
        encoded += b"\x00"
    write_output(encoded, args.hex)


def cmd_decode(args):
    """Decode a COBS frame."""
    frame = read_input(args.file, args.hex)

    # Remove trailing delimiter if present
    if frame and frame[-1] == 0:
        frame = frame[:-1]

    write_output(cobs_decode(frame, strict=args.strict), args.hex)


def cmd_send(link: SerialLink, payload_hex: str):
    """Send one payload."""
    payload = bytes.fromhex(payload_hex)
    link.send(payload)
    print(f"Sent {len(payload)} bytes on {link.port}")


def cmd_monitor(link: SerialLink, count: int):
    """Print received frames until interrupted."""
    def on_error(error: FrameError):
        print(f"Frame error: {error.kind} ({len(error.partial)} bytes dropped)")

    link.errors.subscribe(on_error)
    print(f"Monitoring {link.port} (Ctrl+C to stop)")

    received = 0
    try:
        while count == 0 or received < count:
            try:
                payload = link.receive()
            except TimeoutError:
                continue
            except FrameError:
                # Already reported through the errors channel
                continue
            received += 1
            print(f"[{received:5d}] {len(payload):4d} bytes: {payload.hex(' ')}")
    except KeyboardInterrupt:
        print()

    print(f"{received} frames, {link.decoder.error_count} errors")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="COBS framing tool"
    )
    parser.add_argument(
        "--port", "-p",
        help="Serial port or pyserial URL (e.g., /dev/ttyACM0)"
    )
    parser.add_argument(
        "--baudrate", "-b",
        type=int,
        default=115200,
        help="Baud rate (default 115200)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # encode command
    encode_parser = subparsers.add_parser("encode", help="COBS-encode a payload")
    encode_parser.add_argument("file", nargs="?", type=Path,
                               help="Payload file (default: stdin)")
    encode_parser.add_argument("--hex", action="store_true",
                               help="Read and write hex text instead of binary")
    encode_parser.add_argument("--delimit", "-d", action="store_true",
                               help="Append the 0x00 frame delimiter")

    # decode command
    decode_parser = subparsers.add_parser("decode", help="Decode a COBS frame")
    decode_parser.add_argument("file", nargs="?", type=Path,
                               help="Frame file (default: stdin)")
    decode_parser.add_argument("--hex", action="store_true",
                               help="Read and write hex text instead of binary")
    decode_parser.add_argument("--strict", action="store_true",
                               help="Reject malformed frames")

    # send command
    send_parser = subparsers.add_parser("send", help="Send one payload")
    send_parser.add_argument("payload", help="Payload as hex (e.g., 11220033)")

    # monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Print received frames")
    monitor_parser.add_argument("--count", "-n", type=int, default=0,
                                help="Stop after N frames (default: run forever)")
    monitor_parser.add_argument("--policy", type=ErrorPolicy,
                                choices=list(ErrorPolicy),
                                default=ErrorPolicy.RESYNC,
                                help="Malformed frame handling")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command in ("encode", "decode"):
        if args.file is not None and not args.file.exists():
            print(f"Error: File not found: {args.file}")
            sys.exit(1)
        try:
            if args.command == "encode":
                cmd_encode(args)
            else:
                cmd_decode(args)
        except CobsDecodeError as e:
            print(f"Error: {e}")
            sys.exit(1)
        except ValueError as e:
            print(f"Error: invalid hex input: {e}")
            sys.exit(1)
        return

    if args.port is None:
        parser.error(f"--port is required for {args.command}")

    if args.command == "send":
        try:
            bytes.fromhex(args.payload)
        except ValueError as e:
            print(f"Error: invalid hex payload: {e}")
            sys.exit(1)

    policy = getattr(args, "policy", ErrorPolicy.RESYNC)
    try:
        link = SerialLink(args.port, args.baudrate, policy=policy)
    except serial.SerialException as e:
        print(f"Error opening {args.port}: {e}")
        sys.exit(1)

    try:
        if args.command == "send":
            cmd_send(link, args.payload)
        elif args.command == "monitor":
            cmd_monitor(link, args.count)
    except TransportError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        link.close()


if __name__ == "__main__":
    main()
