from __future__ import annotations

"""
Result-returning facade over the pack stream and chunked file transfer.

Lower layers raise ``PackError`` subclasses; every public method here catches
them (and stray ``OSError``) and returns a ``Result`` instead, so callers can
branch on ``result.ok`` / ``result.kind`` without try/except. The message of
the last failure is also kept per instance in ``last_error``.
"""

import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, Generic, Optional, TypeVar

from . import transfer
from .constants import DEFAULT_CHUNK_SIZE, MODE_BINARY, MODE_TEXT
from .errors import PackError, PackIOError, StreamStateError
from .fileinfo import FileInfo
from .stream import PackStream


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[PackError] = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(True, value)

    @classmethod
    def failure(cls, error: PackError) -> "Result[T]":
        return cls(False, None, error)


class Pack:
    """Pack file access with a fixed block mode and chunk size."""

    def __init__(self, mode: str = MODE_BINARY, chunk_size: int = DEFAULT_CHUNK_SIZE):
        # validates mode and chunk_size
        PackStream(mode, chunk_size)
        self.mode = mode
        self.chunk_size = chunk_size
        self.last_error = ""
        self._stream: Optional[PackStream] = None
        self._last_mode: Optional[str] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def get_mode(self) -> str:
        """Mode of the pack most recently opened, else the configured mode."""
        if self._last_mode is not None:
            return self._last_mode
        return self.mode

    def get_last_error(self) -> str:
        return self.last_error

    # stream operations
    def open_write(self, path: str, rewrite: bool = False) -> Result[None]:
        return self._run(self._open, path, rewrite, False)

    def open_read(self, path: str) -> Result[None]:
        return self._run(self._open, path, False, True)

    def write(self, data: bytes) -> Result[int]:
        return self._run(self._write, data)

    def read(self, decode: bool = True) -> Result:
        """Read (or with ``decode=False`` skip) the next block.

        A clean end of pack is a success with ``value`` None (or False when
        skipping).
        """
        return self._run(self._read, decode)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    # single-call helpers
    def put(self, path: str, data: bytes, rewrite: bool = False) -> Result[int]:
        return self._run(self._put, path, data, rewrite, self.mode)

    def text(self, path: str, data: bytes, rewrite: bool = False) -> Result[int]:
        """Like ``put`` but always stores a text-mode block.

        The configured mode is left as it was, so ``get_mode`` is unaffected.
        """
        return self._run(self._put, path, data, rewrite, MODE_TEXT, False)

    def get(self, path: str, index: int = 1) -> Result[bytes]:
        return self._run(self._get, path, index)

    # chunked files
    def compress_file(
        self, src: str, dest: Optional[str] = None, remove_src: bool = False, replace_dest: bool = False
    ) -> Result[int]:
        return self._run(
            transfer.pack_file,
            src,
            dest,
            mode=self.mode,
            chunk_size=self.chunk_size,
            remove_src=remove_src,
            replace_dest=replace_dest,
        )

    def compress_file_text(
        self, src: str, dest: Optional[str] = None, remove_src: bool = False, replace_dest: bool = False
    ) -> Result[int]:
        return self._run(
            transfer.pack_file,
            src,
            dest,
            mode=MODE_TEXT,
            chunk_size=self.chunk_size,
            remove_src=remove_src,
            replace_dest=replace_dest,
        )

    def uncompress_file(self, src: str, dest: Optional[str] = None, replace_dest: bool = False) -> Result[FileInfo]:
        return self._run(transfer.unpack_file, src, dest, replace_dest=replace_dest)

    def export_file(
        self,
        src: str,
        sink: Optional[BinaryIO] = None,
        ignore_headers: bool = False,
        header_sink: Optional[Callable[[str, str], None]] = None,
    ) -> Result[FileInfo]:
        return self._run(
            transfer.export_file,
            src,
            sink if sink is not None else sys.stdout.buffer,
            header_sink=header_sink,
            ignore_headers=ignore_headers,
        )

    # internals
    def _run(self, func, *args, **kwargs) -> Result:
        self.last_error = ""
        try:
            return Result.success(func(*args, **kwargs))
        except PackError as exc:
            self.last_error = str(exc)
            return Result.failure(exc)
        except OSError as exc:
            err = PackIOError(str(exc))
            self.last_error = str(err)
            return Result.failure(err)

    def _new_stream(self, mode: str) -> PackStream:
        return PackStream(mode, self.chunk_size)

    def _open(self, path: str, rewrite: bool, read_only: bool) -> None:
        if self._stream is not None:
            raise StreamStateError(f"A pack is already open: {self._stream.path}")
        stream = self._new_stream(self.mode)
        if read_only:
            stream.open_read(path)
        else:
            stream.open_write(path, rewrite)
        self._stream = stream
        self._last_mode = stream.mode

    def _current(self) -> PackStream:
        if self._stream is None:
            raise StreamStateError("No pack is open")
        return self._stream

    def _write(self, data: bytes) -> int:
        stream = self._current()
        try:
            return stream.write_block(data)
        except PackIOError:
            self.close()
            raise

    def _read(self, decode: bool):
        stream = self._current()
        try:
            return stream.read_next_block(decode)
        except StreamStateError:
            raise
        except PackError:
            self.close()
            raise

    def _put(self, path: str, data: bytes, rewrite: bool, mode: str, track_mode: bool = True) -> int:
        with self._new_stream(mode) as stream:
            stream.open_write(path, rewrite)
            if track_mode:
                self._last_mode = stream.mode
            return stream.write_block(data)

    def _get(self, path: str, index: int) -> bytes:
        with self._new_stream(self.mode) as stream:
            stream.open_read(path)
            self._last_mode = stream.mode
            return stream.read_at(index)


def put(
    path: str, data: bytes, *, mode: str = MODE_BINARY, rewrite: bool = False, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Result[int]:
    return Pack(mode, chunk_size).put(path, data, rewrite)


def get(path: str, index: int = 1, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Result[bytes]:
    return Pack(chunk_size=chunk_size).get(path, index)
