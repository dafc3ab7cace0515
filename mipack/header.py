from __future__ import annotations

from typing import BinaryIO, Optional

from .constants import HEADER_SIZE, MAGIC_VERSION, MODE_CHARS
from .errors import HeaderMismatch, PackIOError


_MODES_BY_CHAR = {v: k for k, v in MODE_CHARS.items()}


def pack_header(mode: str) -> bytes:
    try:
        return MAGIC_VERSION + MODE_CHARS[mode]
    except KeyError:
        raise ValueError(f"unknown pack mode: {mode!r}") from None


def write_header(f: BinaryIO, mode: str) -> None:
    raw = pack_header(mode)
    written = f.write(raw)
    if written is not None and written != len(raw):
        raise PackIOError("Short write while writing pack header")


def read_header(f: BinaryIO, expected_mode: Optional[str] = None, read_only: bool = True) -> str:
    """Validate the pack header at the current position and return its mode.

    When ``read_only`` is False the stored mode must equal ``expected_mode``
    and the file is left positioned at its end, ready for appending.
    """
    raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        raise HeaderMismatch("Pack header too short")
    if raw[:-1] != MAGIC_VERSION:
        raise HeaderMismatch("Pack header magic/version mismatch")
    mode = _MODES_BY_CHAR.get(raw[-1:])
    if mode is None:
        raise HeaderMismatch(f"Unknown pack mode flag {raw[-1:]!r}")
    if not read_only:
        if mode != expected_mode:
            raise HeaderMismatch(f"Pack is in {mode} mode; cannot append in {expected_mode} mode")
        f.seek(0, 2)
    return mode
