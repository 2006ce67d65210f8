from __future__ import annotations

DEFAULT_PORT = 1121
BLOCK_SIZE = 65536  # disk I/O, socket buffers and wire chunks
NAME_LENGTH = 239  # sized so the header is 256 bytes

HEADER_FORMAT = "!IIIIB239s"  # type, blocks, extra, mtime, flags, name

FILE = 1
BEGIN_DIR = 2
END_DIR = 3
END_SESSION = 4
ACCEPT = 5
SKIP = 6

FLAG_EXECUTABLE = 0x1

SIZE_BITS = 47
MAX_SIZE = (1 << SIZE_BITS) - 1
MAX_MTIME = 0xFFFFFFFF

PLACEHOLDER = ord("_")
