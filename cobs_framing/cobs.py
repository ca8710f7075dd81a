# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
COBS (Consistent Overhead Byte Stuffing) encoder/decoder.

COBS is a framing algorithm that eliminates 0x00 bytes from data,
allowing 0x00 to be used as a packet delimiter.

Each encoded frame is a sequence of blocks. A block starts with an
overhead byte ``v`` (0x01..0xFF) followed by ``v - 1`` non-zero data
bytes. Closing a block with ``v < 0xFF`` stands for a zero byte in the
original data, unless it is the last block of the frame.
"""

DELIMITER = 0x00
OVERHEAD_MAX = 0xFF
MAX_BLOCK_DATA = OVERHEAD_MAX - 1


class CobsDecodeError(ValueError):
    """Malformed COBS frame."""
    pass


def cobs_encode(data) -> bytes:
    """
    Encode data using COBS.

    Args:
        data: Raw bytes to encode (any bytes-like object or iterable of ints)

    Returns:
        COBS-encoded bytes (without delimiter)
    """
    data = bytes(data)
    length = len(data)
    idx = 0

    output = bytearray([0])  # Placeholder for first overhead byte
    code_idx = 0
    code = 1

    # A saturated block is always closed, even at the end of the data
    while idx < length or code == OVERHEAD_MAX:
        if code != OVERHEAD_MAX and data[idx] != DELIMITER:
            output.append(data[idx])
            code += 1
            idx += 1
            continue

        if code != OVERHEAD_MAX:
            idx += 1  # Zero byte, implied by closing the block

        output[code_idx] = code
        code_idx = len(output)
        output.append(0)  # Placeholder
        code = 1

    output[code_idx] = code
    return bytes(output)


def cobs_frame(data) -> bytes:
    """Encode data and append the 0x00 frame delimiter."""
    return cobs_encode(data) + bytes([DELIMITER])


def cobs_decode(data, strict: bool = False) -> bytes:
    """
    Decode a COBS-encoded frame.

    In the default lenient mode decoding stops at the first zero overhead
    byte and a frame that ends in the middle of a block yields the bytes
    reconstructed so far. The implied zero of the block before a zero
    overhead byte is kept, so strip any trailing delimiter before
    decoding.

    Args:
        data: COBS-encoded bytes, without delimiter
        strict: Raise on malformed input instead of returning partial output

    Returns:
        Decoded raw bytes

    Raises:
        CobsDecodeError: If strict is set and data is malformed
    """
    if strict and not data:
        raise CobsDecodeError("COBS decode: empty frame")

    output = bytearray()
    overhead = OVERHEAD_MAX
    copy = 0

    for offset, byte in enumerate(data):
        if copy:
            if byte == DELIMITER and strict:
                raise CobsDecodeError(
                    f"COBS decode: zero byte in block data at offset {offset}"
                )
            output.append(byte)
        else:
            if overhead != OVERHEAD_MAX:
                output.append(0)
            if byte == DELIMITER:
                if strict:
                    raise CobsDecodeError(
                        f"COBS decode: zero overhead byte at offset {offset}"
                    )
                break
            overhead = copy = byte
        copy -= 1

    if copy and strict:
        raise CobsDecodeError("COBS decode: unexpected end of data")

    return bytes(output)
