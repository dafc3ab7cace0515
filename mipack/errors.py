class PackError(Exception):
    """Base class for pack-specific errors."""

    kind = "PackError"


# Header
class HeaderMismatch(PackError):
    kind = "HeaderMismatch"


# Block framing
class UnsupportedSize(PackError):
    kind = "UnsupportedSize"


class BlockTooLarge(PackError):
    kind = "BlockTooLarge"


class CorruptBlock(PackError):
    kind = "CorruptBlock"


class ChecksumMismatch(PackError):
    kind = "ChecksumMismatch"


class UnexpectedEOF(PackError):
    kind = "UnexpectedEOF"


class BlockNotFound(PackError):
    kind = "BlockNotFound"


# Stream / filesystem
class PackIOError(PackError):
    kind = "IOError"


class StreamStateError(PackError):
    kind = "InvalidState"


# Chunked files
class CorruptMetadata(PackError):
    kind = "CorruptMetadata"


class SizeMismatch(PackError):
    kind = "SizeMismatch"
