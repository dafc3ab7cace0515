from __future__ import annotations

import logging
import os
from typing import BinaryIO, Iterator, Optional

from . import blocks
from .codec import Codec
from .constants import DEFAULT_CHUNK_SIZE, MODE_CHARS, MODE_BINARY
from .errors import BlockNotFound, PackError, PackIOError, StreamStateError
from .header import read_header, write_header


logger = logging.getLogger(__name__)

ACCESS_READ = "read"
ACCESS_APPEND = "append"


class PackStream:
    """Sequential reader/writer over a single pack file.

    A stream is opened either for appending blocks or for reading them in
    order; the access mode is fixed until ``close()``. Read streams adopt
    the mode recorded in the file header, write streams enforce their own.
    """

    def __init__(self, mode: str = MODE_BINARY, chunk_size: int = DEFAULT_CHUNK_SIZE, codec: Optional[Codec] = None):
        if mode not in MODE_CHARS:
            raise ValueError(f"unknown pack mode: {mode!r}")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.mode = mode
        self.chunk_size = chunk_size
        self.codec = codec or Codec()
        self.path: Optional[str] = None
        self.access: Optional[str] = None
        self.f: Optional[BinaryIO] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        return self.blocks()

    @property
    def closed(self) -> bool:
        return self.f is None

    def open_write(self, path: str, rewrite: bool = False) -> "PackStream":
        """Open ``path`` for appending blocks, creating it when missing or ``rewrite``."""
        self._check_closed()
        fresh = rewrite or not os.path.exists(path)
        try:
            self.f = open(path, "wb" if fresh else "r+b")
        except OSError as exc:
            raise PackIOError(f"Cannot open pack for writing: {path}: {exc}") from exc
        try:
            if fresh:
                write_header(self.f, self.mode)
            else:
                read_header(self.f, self.mode, read_only=False)
        except (PackError, OSError) as exc:
            self.close()
            if isinstance(exc, OSError):
                raise PackIOError(f"Cannot initialise pack {path}: {exc}") from exc
            raise
        self.path = path
        self.access = ACCESS_APPEND
        logger.debug("opened %s for %s (%s mode)", path, "rewrite" if fresh else "append", self.mode)
        return self

    def open_read(self, path: str) -> "PackStream":
        """Open ``path`` for sequential reading and adopt its recorded mode."""
        self._check_closed()
        try:
            self.f = open(path, "rb")
        except OSError as exc:
            raise PackIOError(f"Cannot open pack for reading: {path}: {exc}") from exc
        try:
            self.mode = read_header(self.f)
        except (PackError, OSError) as exc:
            self.close()
            if isinstance(exc, OSError):
                raise PackIOError(f"Cannot read pack header {path}: {exc}") from exc
            raise
        self.path = path
        self.access = ACCESS_READ
        logger.debug("opened %s for reading (%s mode)", path, self.mode)
        return self

    def close(self):
        if self.f is not None:
            self.f.close()
            logger.debug("closed %s", self.path)
            self.f = None
        self.access = None

    def write_block(self, data: bytes) -> int:
        f = self._require(ACCESS_APPEND)
        try:
            n = blocks.write_block(f, data, self.mode, self.chunk_size, self.codec)
        except OSError as exc:
            raise PackIOError(f"Cannot write block: {exc}") from exc
        logger.debug("wrote %d-byte block (%d bytes framed)", len(data), n)
        return n

    def read_block(self) -> Optional[bytes]:
        """Decode the next block, or return None when the pack has no more blocks."""
        f = self._require(ACCESS_READ)
        try:
            return blocks.read_block(f, self.mode, self.codec)
        except OSError as exc:
            raise PackIOError(f"Cannot read block: {exc}") from exc

    def skip_block(self) -> bool:
        f = self._require(ACCESS_READ)
        try:
            return blocks.skip_block(f, self.mode)
        except OSError as exc:
            raise PackIOError(f"Cannot read block: {exc}") from exc

    def read_next_block(self, decode: bool = True):
        if decode:
            return self.read_block()
        return self.skip_block()

    def blocks(self) -> Iterator[bytes]:
        while True:
            data = self.read_block()
            if data is None:
                return
            yield data

    def rewind(self):
        """Reposition a read stream on its first block."""
        f = self._require(ACCESS_READ)
        try:
            f.seek(0)
            read_header(f)
        except OSError as exc:
            raise PackIOError(f"Cannot rewind pack: {exc}") from exc

    def read_at(self, index: int) -> bytes:
        """Return block ``index`` (1-based), rescanning from the first block."""
        self.rewind()
        if index <= 0:
            index = 1
        for i in range(1, index):
            if not self.skip_block():
                raise BlockNotFound(f"Block #{index} does not exist (pack holds {i - 1})")
        data = self.read_block()
        if data is None:
            raise BlockNotFound(f"Block #{index} does not exist (pack holds {index - 1})")
        return data

    # internals
    def _check_closed(self):
        if self.f is not None:
            raise StreamStateError(f"Stream already open on {self.path}")

    def _require(self, access: str) -> BinaryIO:
        if self.f is None:
            raise StreamStateError("Pack stream is not open")
        if self.access != access:
            raise StreamStateError(f"Pack stream is open for {self.access}, not {access}")
        return self.f
