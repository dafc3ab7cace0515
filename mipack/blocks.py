from __future__ import annotations

import base64
import binascii
from typing import BinaryIO, Optional, Tuple

from .codec import Codec
from .constants import (
    LINE_TERMINATOR,
    MAX_LENGTH_BYTES,
    MODE_BINARY,
    MODE_TEXT,
    TEXT_BLOCK_MARK,
    TEXT_DIGEST_HEX_LEN,
    TEXT_HEADER_MIN_LEN,
    TEXT_WRAP_COLUMNS,
)
from .errors import BlockTooLarge, ChecksumMismatch, CorruptBlock, PackIOError, UnexpectedEOF
from .hashutil import block_digest
from .lengthcodec import decode_length, encode_length


# Binary frame:  count u8 | length (count bytes, LE) | zlib payload
# Text frame:    EOL | "#" hexlen ":" md5hex EOL | base64 payload wrapped at 1024 cols

_MAX_PAYLOAD_LEN = 1 << (8 * MAX_LENGTH_BYTES)


def read_exact(f: BinaryIO, n: int) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise UnexpectedEOF("Unexpected EOF inside block")
    return b


def wrap_lines(data: bytes, width: int = TEXT_WRAP_COLUMNS) -> bytes:
    return LINE_TERMINATOR.join(data[i : i + width] for i in range(0, len(data), width))


def encode_binary(data: bytes, codec: Optional[Codec] = None) -> bytes:
    compact = (codec or Codec()).compress(data)
    size = encode_length(len(compact))
    return bytes([len(size)]) + size + compact


def encode_text(data: bytes) -> bytes:
    compact = wrap_lines(base64.b64encode(data).rstrip(b"="))
    # Text frames use hex lengths, but the same size budget applies
    encode_length(len(compact))
    head = (
        LINE_TERMINATOR
        + TEXT_BLOCK_MARK
        + format(len(compact), "x").encode("ascii")
        + b":"
        + block_digest(compact)
        + LINE_TERMINATOR
    )
    return head + compact


def encode_block(data: bytes, mode: str, chunk_size: int, codec: Optional[Codec] = None) -> bytes:
    """Build a complete block frame for ``data``.

    Payloads larger than ``chunk_size`` are rejected; those belong in a
    chunked file transfer, never in a single block.
    """
    if chunk_size > 0 and len(data) > chunk_size:
        raise BlockTooLarge(f"Block of {len(data)} bytes exceeds chunk size {chunk_size}")
    if mode == MODE_BINARY:
        return encode_binary(data, codec)
    if mode == MODE_TEXT:
        return encode_text(data)
    raise ValueError(f"unknown pack mode: {mode!r}")


def write_block(f: BinaryIO, data: bytes, mode: str, chunk_size: int, codec: Optional[Codec] = None) -> int:
    frame = encode_block(data, mode, chunk_size, codec)
    written = f.write(frame)
    if written is not None and written != len(frame):
        raise PackIOError("Short write while writing block")
    return len(frame)


def _read_binary_header(f: BinaryIO) -> Optional[Tuple[int, Optional[bytes]]]:
    fmt = f.read(1)
    if not fmt:
        return None
    count = fmt[0]
    if count < 1 or count > MAX_LENGTH_BYTES:
        raise CorruptBlock(f"Invalid block length byte count: {count}")
    return decode_length(read_exact(f, count)), None


def _read_text_header(f: BinaryIO) -> Optional[Tuple[int, Optional[bytes]]]:
    sep = f.readline()
    if not sep:
        return None
    if sep.strip(b"\r\n"):
        raise CorruptBlock("Missing text block separator")
    line = f.readline()
    if not line:
        raise UnexpectedEOF("Unexpected EOF before text block header")
    if len(line) < TEXT_HEADER_MIN_LEN or not line.startswith(TEXT_BLOCK_MARK):
        raise CorruptBlock("Malformed text block header")
    hexlen, sepchar, digest = line[1:].rstrip(b"\r\n").partition(b":")
    if not sepchar or len(digest) != TEXT_DIGEST_HEX_LEN:
        raise CorruptBlock("Malformed text block header")
    try:
        size = int(hexlen, 16)
    except ValueError:
        raise CorruptBlock("Malformed text block length") from None
    if size < 0 or size >= _MAX_PAYLOAD_LEN:
        raise CorruptBlock("Text block length out of range")
    return size, digest.lower()


def read_block_header(f: BinaryIO, mode: str) -> Optional[Tuple[int, Optional[bytes]]]:
    """Read one frame header; returns (payload_len, digest) or None at a clean end."""
    if mode == MODE_BINARY:
        return _read_binary_header(f)
    if mode == MODE_TEXT:
        return _read_text_header(f)
    raise ValueError(f"unknown pack mode: {mode!r}")


def decode_text_payload(payload: bytes) -> bytes:
    compact = b"".join(payload.split())
    compact += b"=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CorruptBlock(f"Invalid base64 payload: {e}") from e


def read_block(f: BinaryIO, mode: str, codec: Optional[Codec] = None) -> Optional[bytes]:
    hdr = read_block_header(f, mode)
    if hdr is None:
        return None
    size, digest = hdr
    payload = read_exact(f, size)
    if mode == MODE_BINARY:
        return (codec or Codec()).decompress(payload)
    if block_digest(payload) != digest:
        raise ChecksumMismatch("Text block digest mismatch")
    return decode_text_payload(payload)


def skip_block(f: BinaryIO, mode: str) -> bool:
    """Advance past the next block without decoding it; False at a clean end."""
    hdr = read_block_header(f, mode)
    if hdr is None:
        return False
    size, _digest = hdr
    pos = f.tell()
    end = f.seek(0, 2)
    if pos + size > end:
        raise UnexpectedEOF("Block payload extends past end of pack")
    f.seek(pos + size)
    return True
