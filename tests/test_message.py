from __future__ import annotations

import struct

import pytest

from pushcp.constants import MAX_SIZE, NAME_LENGTH
from pushcp.errors import ProtocolError
from pushcp.message import (
    HEADER_SIZE,
    Message,
    MessageType,
    decode_size,
    encode_size,
    sanitize_name,
    wire_name,
)


@pytest.mark.parametrize("size", [0, 1, 0xFFFF, 0x10000, 0x10001, 2**32, 2**32 + 12345, MAX_SIZE])
def test_size_roundtrip(size):
    assert decode_size(*encode_size(size)) == size


@pytest.mark.parametrize("size", [-1, MAX_SIZE + 1, 2**63])
def test_size_out_of_range(size):
    with pytest.raises(ValueError):
        encode_size(size)


def test_size_split():
    assert encode_size(0x123456789) == (0x12345, 0x6789)


def test_header_is_256_bytes():
    assert HEADER_SIZE == 256
    assert len(Message.end_session().to_bytes()) == 256


def test_header_layout_is_big_endian():
    raw = Message.file(0x10002, "a.txt", mtime=7, executable=True).to_bytes()
    assert struct.unpack("!IIIIB", raw[:17]) == (1, 1, 2, 7, 1)
    assert raw[17:22] == b"a.txt"
    assert raw[22:] == b"\0" * (256 - 22)


def test_roundtrip_file():
    m = Message.file(5_000_000_000, "video.mkv", mtime=1_700_000_000, executable=True)
    p = Message.from_bytes(m.to_bytes())
    assert p == m
    assert p.kind is MessageType.FILE


def test_roundtrip_accept():
    p = Message.from_bytes(Message.accept(4096).to_bytes())
    assert p.kind is MessageType.ACCEPT
    assert p.size == 4096
    assert p.name == ""


def test_type_values():
    assert [int(t) for t in MessageType] == [1, 2, 3, 4, 5, 6]


def test_short_header():
    with pytest.raises(ProtocolError):
        Message.from_bytes(Message.skip().to_bytes()[:-1])


def test_unknown_type():
    raw = bytearray(Message.skip().to_bytes())
    raw[3] = 9
    with pytest.raises(ProtocolError):
        Message.from_bytes(bytes(raw))


def test_malformed_extra():
    raw = bytearray(Message.accept(1).to_bytes())
    raw[8:12] = struct.pack("!I", 0x10000)
    with pytest.raises(ProtocolError):
        Message.from_bytes(bytes(raw))


def test_name_too_long():
    with pytest.raises(ValueError):
        Message.begin_dir("x" * (NAME_LENGTH + 1)).to_bytes()


def test_name_fills_field():
    name = "n" * NAME_LENGTH
    assert Message.from_bytes(Message.begin_dir(name).to_bytes()).name == name


def test_sanitize_name():
    assert sanitize_name("café \t1.txt".encode()) == b"caf__ _1.txt"


def test_wire_name_strips_directories(tmp_path):
    assert wire_name("/some/where/report.pdf") == "report.pdf"
    assert wire_name("/some/where/dir/") == "dir"
    assert wire_name(tmp_path / ".") == tmp_path.name


def test_wire_name_truncates():
    assert wire_name("/tmp/" + "y" * 300) == "y" * NAME_LENGTH


def test_wire_name_sanitized():
    assert wire_name("/tmp/über.txt", sanitize=True) == "__ber.txt"
