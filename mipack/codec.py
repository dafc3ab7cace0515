from __future__ import annotations

import zlib
from typing import Optional

from .constants import COMPRESS_LARGE_THRESHOLD, COMPRESS_LEVEL_LARGE, COMPRESS_LEVEL_MAX
from .errors import CorruptBlock


class Codec:
    """zlib stream codec used for binary-mode blocks.

    The zlib stream carries its own Adler-32 trailer, which is the integrity
    check for binary packs.
    """

    def __init__(self, level: Optional[int] = None):
        self.level = level

    def level_for(self, size: int) -> int:
        if self.level is not None:
            return self.level
        return COMPRESS_LEVEL_LARGE if size >= COMPRESS_LARGE_THRESHOLD else COMPRESS_LEVEL_MAX

    def compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level_for(len(data)))

    def decompress(self, data: bytes) -> bytes:
        try:
            return zlib.decompress(data)
        except zlib.error as e:
            raise CorruptBlock(f"Block decompression failed: {e}") from e
