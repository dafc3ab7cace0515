from __future__ import annotations

from Cryptodome.Hash import MD5


def block_digest(payload: bytes) -> bytes:
    """Hex digest stored in text-mode block headers (MD5 over the encoded payload)."""
    return MD5.new(payload).hexdigest().encode("ascii")
