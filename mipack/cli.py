from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import BinaryIO, List, Optional

from mipack.api import Pack, Result
from mipack.constants import DEFAULT_CHUNK_SIZE, MODE_BINARY, MODE_TEXT
from mipack.errors import CorruptMetadata, PackError
from mipack.fileinfo import FileInfo
from mipack.stream import PackStream
from mipack.transfer import read_file_info


def _check(result: Result):
    """Return the result value or raise its error."""
    if not result.ok:
        raise result.error
    return result.value


def _mode(text: bool) -> str:
    return MODE_TEXT if text else MODE_BINARY


def cmd_put(pack: str, source: str, *, text: bool = False, rewrite: bool = False, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """Append one block to a pack.

    Args:
        pack: Pack file to create or append to.
        source: File whose contents become the block, or "-" for stdin.
        text: Store the block in text mode (base64 + digest).
        rewrite: Truncate an existing pack first.
    """
    if source == "-":
        data = sys.stdin.buffer.read()
    else:
        with open(source, "rb") as rf:
            data = rf.read()
    p = Pack(_mode(text), chunk_size)
    framed = _check(p.put(pack, data, rewrite=rewrite))
    print(f"Stored {len(data)} bytes as a {p.get_mode()} block ({framed} bytes framed)", file=sys.stderr)
    return True


def cmd_get(pack: str, *, index: int = 1, output: Optional[str] = None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """Write block ``index`` (1-based) of a pack to ``output`` or stdout."""
    data = _check(Pack(chunk_size=chunk_size).get(pack, index))
    if output and output != "-":
        with open(output, "wb") as wf:
            wf.write(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return True


def cmd_list(pack: str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """List the blocks of a pack with their decoded sizes."""
    with Pack(chunk_size=chunk_size) as p:
        _check(p.open_read(pack))
        idx = 0
        while True:
            data = _check(p.read())
            if data is None:
                break
            idx += 1
            print(f"block\t{idx}\t{len(data)}")
        print(f"Total: {idx} block(s), {p.get_mode()} mode")
    return True


def cmd_info(pack: str) -> bool:
    """Show pack mode, block count and stored file information if present."""
    with PackStream() as stream:
        stream.open_read(pack)
        print(f"Pack: {pack}")
        print(f"  Mode: {stream.mode}")
        print(f"  Size: {os.path.getsize(pack)}")
        try:
            info: Optional[FileInfo] = read_file_info(stream)
        except CorruptMetadata:
            # plain block pack; count from the first block again
            info = None
            stream.rewind()
        count = 1 if info is not None else 0
        while stream.skip_block():
            count += 1
        if info is None:
            print(f"  Blocks: {count}")
        else:
            print(f"  Blocks: {count} (file information + {count - 1} chunk(s))")
            print(f"  File: {info.file}")
            print(f"    Size: {info.size}")
            print(f"    Date: {time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(info.date))}")
            print(f"    MIME: {info.mime}")
            print(f"    Chunks: {info.chks}")
    return True


def cmd_pack(
    src: str,
    dest: Optional[str] = None,
    *,
    text: bool = False,
    remove_src: bool = False,
    replace: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    quiet: bool = False,
) -> bool:
    """Pack a file into chunks.

    Args:
        src: File to pack.
        dest: Pack path; defaults to the source name with a ".miframe-pack" extension.
        text: Write a text-mode pack.
        remove_src: Delete the source after a successful pack.
        replace: Overwrite an existing destination.
    """
    t0 = time.time()
    size = os.path.getsize(src) if os.path.isfile(src) else 0
    chunks = _check(Pack(_mode(text), chunk_size).compress_file(src, dest, remove_src=remove_src, replace_dest=replace))
    if not quiet:
        dt = max(0.000001, time.time() - t0)
        mib = size / (1024.0 * 1024.0)
        print(f"Done: {chunks} chunk(s), {mib:.2f} MiB in {dt:.1f}s; {mib / dt:.2f} MiB/s")
    return True


def cmd_unpack(pack: str, dest: Optional[str] = None, *, replace: bool = False, quiet: bool = False) -> bool:
    """Restore the file stored in a chunked pack."""
    info = _check(Pack().uncompress_file(pack, dest, replace_dest=replace))
    if not quiet:
        print(f"Done: restored {info.file} ({info.size} bytes, {info.chks} chunk(s))")
    return True


def cmd_export(pack: str, *, cgi: bool = False, out: Optional[BinaryIO] = None) -> bool:
    """Stream the file stored in a chunked pack to stdout.

    With ``cgi`` the download headers are written first, CGI style, followed
    by a blank line.
    """
    raw = out if out is not None else sys.stdout.buffer
    p = Pack()
    if cgi:
        sink = _CGISink(raw)
        result = p.export_file(pack, sink, header_sink=sink.header)
    else:
        result = p.export_file(pack, raw, ignore_headers=True)
    raw.flush()
    _check(result)
    return True


class _CGISink:
    """Writes "Name: value" header lines, then a blank line before the body."""

    def __init__(self, raw: BinaryIO):
        self.raw = raw
        self._body = False

    def header(self, name: str, value: str):
        self.raw.write(f"{name}: {value}\r\n".encode("latin-1"))

    def write(self, data: bytes) -> int:
        if not self._body:
            self.raw.write(b"\r\n")
            self._body = True
        return self.raw.write(data)


def main(argv: List[str] | None = None):
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Maximum block size and file chunk size in bytes (default {DEFAULT_CHUNK_SIZE})",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Log debug diagnostics to stderr")

    ap = argparse.ArgumentParser(
        prog="mipack",
        description="MIFRAMEPACK block container tool",
        epilog="Packs obscure and checksum their contents; they are not encrypted.",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_put = sub.add_parser("put", help="Append a block to a pack", parents=[common])
    ap_put.add_argument("pack", help="Pack path")
    ap_put.add_argument("source", nargs="?", default="-", help="Input file (default: stdin)")
    ap_put.add_argument("--text", action="store_true", help="Use text mode (base64 + digest)")
    ap_put.add_argument("--rewrite", action="store_true", help="Truncate the pack first")

    ap_get = sub.add_parser("get", help="Read one block from a pack", parents=[common])
    ap_get.add_argument("pack", help="Pack path")
    ap_get.add_argument("--index", "-i", type=int, default=1, help="Block number, starting at 1")
    ap_get.add_argument("--output", "-o", help="Output file (default: stdout)")

    ap_list = sub.add_parser("list", help="List blocks", parents=[common])
    ap_list.add_argument("pack", help="Pack path")

    ap_info = sub.add_parser("info", help="Show pack information", parents=[common])
    ap_info.add_argument("pack", help="Pack path")

    ap_pack = sub.add_parser("pack", help="Pack a file into chunks", parents=[common])
    ap_pack.add_argument("src", help="File to pack")
    ap_pack.add_argument("dest", nargs="?", help="Pack path (default: <src>.miframe-pack)")
    ap_pack.add_argument("--text", action="store_true", help="Use text mode (base64 + digest)")
    ap_pack.add_argument("--remove-src", action="store_true", help="Delete the source after packing")
    ap_pack.add_argument("--replace", action="store_true", help="Overwrite an existing pack")
    ap_pack.add_argument("--quiet", action="store_true", help="Suppress the summary line")

    ap_unpack = sub.add_parser("unpack", help="Restore a packed file", parents=[common])
    ap_unpack.add_argument("pack", help="Pack path")
    ap_unpack.add_argument("dest", nargs="?", help="Destination (default: stored name next to the pack)")
    ap_unpack.add_argument("--replace", action="store_true", help="Overwrite an existing destination")
    ap_unpack.add_argument("--quiet", action="store_true", help="Suppress the summary line")

    ap_export = sub.add_parser("export", help="Stream a packed file to stdout", parents=[common])
    ap_export.add_argument("pack", help="Pack path")
    ap_export.add_argument("--cgi", action="store_true", help="Emit download headers before the content")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.chunk_size <= 0:
            raise ValueError("--chunk-size must be positive")
        if args.cmd == "put":
            cmd_put(args.pack, args.source, text=args.text, rewrite=args.rewrite, chunk_size=args.chunk_size)
        elif args.cmd == "get":
            cmd_get(args.pack, index=args.index, output=args.output, chunk_size=args.chunk_size)
        elif args.cmd == "list":
            cmd_list(args.pack, chunk_size=args.chunk_size)
        elif args.cmd == "info":
            cmd_info(args.pack)
        elif args.cmd == "pack":
            cmd_pack(
                args.src,
                args.dest,
                text=args.text,
                remove_src=args.remove_src,
                replace=args.replace,
                chunk_size=args.chunk_size,
                quiet=args.quiet,
            )
        elif args.cmd == "unpack":
            cmd_unpack(args.pack, args.dest, replace=args.replace, quiet=args.quiet)
        elif args.cmd == "export":
            cmd_export(args.pack, cgi=args.cgi)
        else:
            raise RuntimeError("Unknown command")
    except PackError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
