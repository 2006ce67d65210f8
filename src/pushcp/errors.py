from __future__ import annotations


class PushError(Exception):
    pass


class ProtocolError(PushError):
    """The peers can no longer agree on the session state; abort."""


class ConnectionClosed(ProtocolError):
    pass
