from __future__ import annotations

"""
Variable-width block length encoding.

A length is stored as its little-endian bytes with the high zero bytes
dropped, so 0 encodes to b"" and 0x1234 to b"\\x34\\x12". The byte count is
carried separately by the block frame and is limited to MAX_LENGTH_BYTES.
"""

from .constants import MAX_LENGTH_BYTES
from .errors import UnsupportedSize


def encode_length(value: int) -> bytes:
    if value < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    v = value
    while v > 0:
        if len(out) == MAX_LENGTH_BYTES:
            raise UnsupportedSize(f"Length {value} needs more than {MAX_LENGTH_BYTES} bytes")
        out.append(v & 0xFF)
        v >>= 8
    return bytes(out)


def decode_length(data: bytes) -> int:
    value = 0
    for i, b in enumerate(data):
        value |= b << (i * 8)
    return value
