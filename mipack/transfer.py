from __future__ import annotations

import logging
import os
from typing import BinaryIO, Callable, Optional

from .constants import DEFAULT_CHUNK_SIZE, DEFAULT_EXTENSION, MODE_BINARY
from .errors import CorruptMetadata, PackError, PackIOError, SizeMismatch
from .fileinfo import FileInfo
from .pathutil import autoname
from .stream import PackStream


logger = logging.getLogger(__name__)

HeaderSink = Callable[[str, str], None]


def open_sink(path: str) -> BinaryIO:
    return open(path, "wb")


def _set_mtime(path: str, mtime: int) -> None:
    """Best-effort mtime restore; a failure only logs."""
    try:
        os.utime(path, (mtime, mtime))
    except OSError as exc:
        logger.warning("failed to set timestamps on %s: %s", path, exc)


def pack_file(
    src: str,
    dest: Optional[str] = None,
    *,
    mode: str = MODE_BINARY,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    remove_src: bool = False,
    replace_dest: bool = False,
) -> int:
    """Pack ``src`` into ``dest`` as a FileInfo block followed by its chunks.

    Returns the number of data chunks written. An existing ``dest`` is only
    overwritten with ``replace_dest``. On failure the partially written pack
    is left in place for the caller to inspect or delete.
    """
    if not os.path.isfile(src):
        raise PackIOError(f"Source file not found: {src}")
    if dest is None:
        dest = autoname(src, os.path.dirname(src), DEFAULT_EXTENSION)
    if os.path.exists(dest) and not replace_dest:
        raise PackIOError(f"Destination already exists: {dest}")
    info = FileInfo.from_path(src, chunk_size)

    with PackStream(mode, chunk_size) as stream:
        stream.open_write(dest, rewrite=True)
        try:
            stream.write_block(info.to_bytes())
        except PackError as exc:
            raise type(exc)(f"Cannot store file information in pack: {exc}") from exc
        try:
            rf = open(src, "rb")
        except OSError as exc:
            raise PackIOError(f"Cannot open source file: {src}: {exc}") from exc
        count = 0
        with rf:
            while True:
                try:
                    raw = rf.read(chunk_size)
                except OSError as exc:
                    raise PackIOError(f"Cannot read chunk #{count + 1} from {src}: {exc}") from exc
                if not raw and count:
                    break
                try:
                    stream.write_block(raw)
                except PackError as exc:
                    raise type(exc)(f"Failed to write chunk #{count + 1}: {exc}") from exc
                count += 1
                if len(raw) < chunk_size:
                    break
    if count != info.chks:
        raise PackIOError(f"Chunk count written ({count}) differs from expected ({info.chks})")
    logger.debug("packed %s into %s: %d chunk(s), %d bytes", src, dest, count, info.size)

    if remove_src:
        os.remove(src)
    return count


def read_file_info(stream: PackStream) -> FileInfo:
    raw = stream.read_block()
    if raw is None:
        raise CorruptMetadata("Pack holds no file information block")
    return FileInfo.from_bytes(raw)


def copy_chunks(stream: PackStream, info: FileInfo, sink: BinaryIO) -> int:
    """Stream ``info.chks`` blocks into ``sink``; returns the bytes written.

    Sink write failures stop the copy early and show up as a short total;
    read failures propagate.
    """
    total = 0
    for idx in range(1, info.chks + 1):
        data = stream.read_block()
        if data is None:
            logger.debug("pack ended before chunk #%d of %d", idx, info.chks)
            break
        try:
            written = sink.write(data)
        except OSError as exc:
            logger.warning("write to destination failed at chunk #%d: %s", idx, exc)
            break
        total += len(data) if written is None else written
    return total


def unpack_file(src: str, dest: Optional[str] = None, *, replace_dest: bool = False) -> FileInfo:
    """Rebuild the file stored in pack ``src`` at ``dest``.

    The destination is deleted again when anything goes wrong after it was
    created; on success its modification time is set from the pack.
    """
    with PackStream() as stream:
        stream.open_read(src)
        info = read_file_info(stream)
        if dest is None:
            dest = autoname(info.file, os.path.dirname(src))
        if os.path.exists(dest) and not replace_dest:
            raise PackIOError(f"Destination already exists: {dest}")
        try:
            wf = open_sink(dest)
        except OSError as exc:
            raise PackIOError(f"Cannot create destination file: {dest}: {exc}") from exc
        try:
            with wf:
                size = copy_chunks(stream, info, wf)
            if size != info.size:
                raise SizeMismatch(f"Restored size differs from recorded size ({size} / {info.size})")
        except (PackError, OSError):
            if os.path.exists(dest):
                os.remove(dest)
            raise
    _set_mtime(dest, info.date)
    logger.debug("unpacked %s to %s (%d bytes)", src, dest, info.size)
    return info


def export_file(
    src: str,
    sink: BinaryIO,
    *,
    header_sink: Optional[HeaderSink] = None,
    ignore_headers: bool = False,
) -> FileInfo:
    """Stream the file stored in pack ``src`` into a writable binary ``sink``.

    Unless ``ignore_headers`` is set, ``header_sink`` receives the download
    headers derived from the file information before any payload is written.
    """
    with PackStream() as stream:
        stream.open_read(src)
        info = read_file_info(stream)
        if not ignore_headers and header_sink is not None:
            for name, value in info.download_headers():
                header_sink(name, value)
        size = copy_chunks(stream, info, sink)
    if size != info.size:
        raise SizeMismatch(f"Exported size differs from recorded size ({size} / {info.size})")
    return info
