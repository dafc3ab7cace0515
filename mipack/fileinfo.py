from __future__ import annotations

import json
import mimetypes
import os
from dataclasses import asdict, dataclass
from typing import List, Tuple

from .constants import DEFAULT_MIME
from .errors import CorruptMetadata


_FIELDS = ("file", "date", "size", "mime", "chks")


def chunk_count(size: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return max(1, -(-size // chunk_size))


def guess_mime(path: str) -> str:
    """MIME type guessed from the file name extension.

    File contents are not inspected; unknown extensions fall back to
    ``DEFAULT_MIME``.
    """
    mime, _enc = mimetypes.guess_type(path)
    return mime or DEFAULT_MIME


@dataclass(frozen=True)
class FileInfo:
    """Metadata block written ahead of the chunks of a packed file."""

    file: str
    date: int
    size: int
    mime: str
    chks: int

    @classmethod
    def from_path(cls, path: str, chunk_size: int) -> "FileInfo":
        st = os.stat(path)
        return cls(
            file=os.path.basename(path),
            date=int(st.st_mtime),
            size=st.st_size,
            mime=guess_mime(path),
            chks=chunk_count(st.st_size, chunk_size),
        )

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self), separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "FileInfo":
        try:
            obj = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CorruptMetadata(f"File information block is not readable: {exc}") from exc
        if not isinstance(obj, dict) or any(k not in obj for k in _FIELDS):
            raise CorruptMetadata("File information block is missing required fields")
        info = cls(**{k: obj[k] for k in _FIELDS})
        info.validate()
        return info

    def validate(self) -> None:
        def _is_int(v) -> bool:
            return isinstance(v, int) and not isinstance(v, bool)

        if not isinstance(self.file, str) or not self.file:
            raise CorruptMetadata("File information has an empty file name")
        if not isinstance(self.mime, str) or not self.mime:
            raise CorruptMetadata("File information has an empty MIME type")
        if not _is_int(self.size) or self.size < 0:
            raise CorruptMetadata(f"File information has an invalid size: {self.size!r}")
        if not _is_int(self.date) or self.date <= 0:
            raise CorruptMetadata(f"File information has an invalid date: {self.date!r}")
        if not _is_int(self.chks) or self.chks <= 0:
            raise CorruptMetadata(f"File information has an invalid chunk count: {self.chks!r}")

    def download_headers(self) -> List[Tuple[str, str]]:
        """HTTP headers for delivering the original file to a browser."""
        if "image" in self.mime:
            disposition = "inline"
        else:
            disposition = f"attachment; filename={os.path.basename(self.file)}"
        return [
            ("Content-type", self.mime),
            ("Content-Disposition", disposition),
            ("Content-Length", str(self.size)),
            ("Pragma", "no-cache"),
            ("Expires", "0"),
        ]
