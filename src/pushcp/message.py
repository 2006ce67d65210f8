from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass

from .constants import (
    ACCEPT,
    BEGIN_DIR,
    END_DIR,
    END_SESSION,
    FILE,
    FLAG_EXECUTABLE,
    HEADER_FORMAT,
    MAX_MTIME,
    MAX_SIZE,
    NAME_LENGTH,
    PLACEHOLDER,
    SKIP,
)
from .errors import ProtocolError

HEADER = struct.Struct(HEADER_FORMAT)
HEADER_SIZE = HEADER.size


class MessageType(enum.IntEnum):
    FILE = FILE
    BEGIN_DIR = BEGIN_DIR
    END_DIR = END_DIR
    END_SESSION = END_SESSION
    ACCEPT = ACCEPT
    SKIP = SKIP


def encode_size(size: int) -> tuple[int, int]:
    """Split a size into (blocks, extra) so each half fits a 32-bit field."""
    if not 0 <= size <= MAX_SIZE:
        raise ValueError(f"size out of range: {size}")
    return size >> 16, size & 0xFFFF


def decode_size(blocks: int, extra: int) -> int:
    if extra > 0xFFFF or blocks > MAX_SIZE >> 16:
        raise ProtocolError(f"malformed size field: blocks={blocks} extra={extra}")
    return (blocks << 16) + extra


def sanitize_name(raw: bytes) -> bytes:
    return bytes(b if 0x20 <= b <= 0x7E else PLACEHOLDER for b in raw)


def wire_name(path: str | os.PathLike[str], sanitize: bool = False) -> str:
    """Basename of path as it travels on the wire.

    Trailing separators are ignored and relative references such as ``.``
    resolve to the real directory name. The result is cut to NAME_LENGTH
    bytes and, with ``sanitize``, every byte outside printable ASCII is
    replaced by ``_``.
    """
    name = os.path.basename(os.path.abspath(os.fspath(path)))
    raw = os.fsencode(name)[:NAME_LENGTH]
    if sanitize:
        raw = sanitize_name(raw)
    return os.fsdecode(raw)


@dataclass(frozen=True, slots=True)
class Message:
    kind: MessageType
    size: int = 0
    name: str = ""
    mtime: int = 0
    executable: bool = False

    def to_bytes(self) -> bytes:
        blocks, extra = encode_size(self.size)
        raw_name = os.fsencode(self.name)
        if len(raw_name) > NAME_LENGTH:
            raise ValueError(f"name too long: {len(raw_name)} bytes")
        if not 0 <= self.mtime <= MAX_MTIME:
            raise ValueError(f"mtime out of range: {self.mtime}")
        flags = FLAG_EXECUTABLE if self.executable else 0
        return HEADER.pack(int(self.kind), blocks, extra, self.mtime, flags, raw_name)

    @staticmethod
    def from_bytes(raw: bytes) -> "Message":
        if len(raw) != HEADER_SIZE:
            raise ProtocolError(f"expected {HEADER_SIZE} byte header, got {len(raw)}")

        kind, blocks, extra, mtime, flags, raw_name = HEADER.unpack(raw)
        try:
            kind = MessageType(kind)
        except ValueError:
            raise ProtocolError(f"unexpected message type ({kind})") from None

        return Message(
            kind=kind,
            size=decode_size(blocks, extra),
            name=os.fsdecode(raw_name.split(b"\0", 1)[0]),
            mtime=mtime,
            executable=bool(flags & FLAG_EXECUTABLE),
        )

    @staticmethod
    def file(size: int, name: str, mtime: int = 0, executable: bool = False) -> "Message":
        return Message(MessageType.FILE, size=size, name=name, mtime=mtime, executable=executable)

    @staticmethod
    def begin_dir(name: str) -> "Message":
        return Message(MessageType.BEGIN_DIR, name=name)

    @staticmethod
    def end_dir() -> "Message":
        return Message(MessageType.END_DIR)

    @staticmethod
    def end_session() -> "Message":
        return Message(MessageType.END_SESSION)

    @staticmethod
    def accept(offset: int) -> "Message":
        return Message(MessageType.ACCEPT, size=offset)

    @staticmethod
    def skip() -> "Message":
        return Message(MessageType.SKIP)
