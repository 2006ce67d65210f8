from __future__ import annotations

import socket
import threading

import pytest

from pushcp.net import TcpConnection


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    left, right = TcpConnection(a), TcpConnection(b)
    yield left, right
    left.close()
    right.close()


class Background(threading.Thread):
    """Runs a callable in a thread and re-raises its exception on join."""

    def __init__(self, fn):
        super().__init__(daemon=True)
        self.fn = fn
        self.result = None
        self.error: BaseException | None = None

    def run(self):
        try:
            self.result = self.fn()
        except BaseException as exc:  # surfaced by join()
            self.error = exc

    def join(self, timeout: float | None = 10.0):
        super().join(timeout)
        assert not self.is_alive(), "background peer did not finish"
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def background():
    def start(fn):
        t = Background(fn)
        t.start()
        return t

    return start
