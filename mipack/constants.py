import os


# Magic and version
MAGIC_VERSION = b"MIFRAMEPACK/1.0/"  # 16 bytes, followed by one mode byte

# Modes
MODE_BINARY = "binary"
MODE_TEXT = "text"

MODE_CHAR_BINARY = b"B"
MODE_CHAR_TEXT = b"T"

MODE_CHARS = {
    MODE_BINARY: MODE_CHAR_BINARY,
    MODE_TEXT: MODE_CHAR_TEXT,
}

HEADER_SIZE = len(MAGIC_VERSION) + 1


# Block framing
MAX_LENGTH_BYTES = 7  # encoded block size < 2**56

# Deflate effort: maximum for small payloads, lower above ~1 MiB for speed
COMPRESS_LEVEL_MAX = 9
COMPRESS_LEVEL_LARGE = 7
COMPRESS_LARGE_THRESHOLD = 1_045_504

# Text mode
TEXT_WRAP_COLUMNS = 1024
LINE_TERMINATOR = os.linesep.encode("ascii")
TEXT_BLOCK_MARK = b"#"
TEXT_DIGEST_HEX_LEN = 32
# "#" + at least one hex digit + ":" + digest + "\n"
TEXT_HEADER_MIN_LEN = 1 + 1 + 1 + TEXT_DIGEST_HEX_LEN + 1


DEFAULT_CHUNK_SIZE = 10_485_760  # 10 MiB
DEFAULT_EXTENSION = "miframe-pack"
DEFAULT_MIME = "application/octet-stream"
