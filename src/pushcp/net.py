from __future__ import annotations

import logging
import socket
from typing import Tuple

from .constants import BLOCK_SIZE, DEFAULT_PORT
from .errors import ConnectionClosed
from .message import HEADER_SIZE, Message


def check_port(port: str) -> int:
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"invalid port {port!r}")
    return int(port)


def split_port(address: str, default: int = DEFAULT_PORT) -> Tuple[str, int]:
    """Split ``host:port`` into its parts; a missing port yields ``default``."""
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, default
    return host, check_port(port)


def _tune(sock: socket.socket) -> None:
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, BLOCK_SIZE)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, BLOCK_SIZE)


class TcpConnection:
    """Blocking byte stream with exact-length send and receive."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.bytes_sent = 0
        self.bytes_received = 0

    @classmethod
    def connecting(cls, host: str, port: int = DEFAULT_PORT) -> "TcpConnection":
        sock = socket.create_connection((host, port))
        _tune(sock)
        logging.info("connected to %s:%d", host, port)
        return cls(sock)

    @classmethod
    def listening(cls, host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> "TcpConnection":
        with TcpListener(host, port) as listener:
            return listener.accept()

    def send_all(self, data: bytes) -> None:
        self.sock.sendall(data)
        self.bytes_sent += len(data)

    def recv_exact(self, count: int) -> bytes:
        buf = bytearray(count)
        view = memoryview(buf)
        got = 0
        while got < count:
            n = self.sock.recv_into(view[got:], count - got)
            if n == 0:
                raise ConnectionClosed(f"connection closed after {got} of {count} bytes")
            got += n
        self.bytes_received += count
        return bytes(buf)

    def send_message(self, msg: Message) -> None:
        logging.debug("-> %s size=%d name=%r", msg.kind.name, msg.size, msg.name)
        self.send_all(msg.to_bytes())

    def recv_message(self) -> Message:
        msg = Message.from_bytes(self.recv_exact(HEADER_SIZE))
        logging.debug("<- %s size=%d name=%r", msg.kind.name, msg.size, msg.name)
        return msg

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "TcpConnection":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()


class TcpListener:
    """Listening socket that hands out a single accepted connection."""

    def __init__(self, host: str = "0.0.0.0", port: int = DEFAULT_PORT):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            self.sock.bind((host, port))
            self.sock.listen(1)
        except OSError:
            self.sock.close()
            raise

    @property
    def address(self) -> Tuple[str, int]:
        return self.sock.getsockname()[:2]

    def accept(self) -> TcpConnection:
        logging.info("waiting for a peer on %s:%d", *self.address)
        conn, addr = self.sock.accept()
        _tune(conn)
        logging.info("accepted connection from %s:%d", addr[0], addr[1])
        return TcpConnection(conn)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "TcpListener":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()
