"""
mipack — MIFRAMEPACK block container

A pack file is a fixed header (magic, version, mode flag) followed by a
sequence of independently framed blocks:

- Binary mode: zlib-compressed blocks with a variable-width length prefix;
  the zlib trailer doubles as the integrity check.
- Text mode: base64 blocks wrapped at 1024 columns, each with a hex length
  and an MD5 digest of the encoded payload.
- Chunked files: a FileInfo metadata block followed by size-bounded chunks,
  restored with size verification and the original modification time.

Packs obscure and checksum their contents; they do not encrypt them.
"""

__version__ = "1.0"

__all__ = [
    "Pack",
    "Result",
    "PackStream",
    "FileInfo",
    "get",
    "put",
]

from .api import Pack, Result, get, put
from .fileinfo import FileInfo
from .stream import PackStream
