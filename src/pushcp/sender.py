from __future__ import annotations

import logging
import os
import stat
import time
from dataclasses import dataclass, field
from typing import BinaryIO

from .constants import BLOCK_SIZE, MAX_MTIME, MAX_SIZE
from .errors import ProtocolError
from .fs import is_executable
from .message import Message, MessageType, wire_name
from .net import TcpConnection
from .progress import NullProgress, ProgressState, TransferStats
from .receiver import SessionState


@dataclass(slots=True)
class Sender:
    """Pushes local files and directory trees to a receiver.

    Call ``send_item`` once per path, then ``end_session`` exactly once.
    Failures local to one item (stat, listing, opening before the request
    goes out) are logged and the item is skipped. Anything that would leave
    the receiver waiting for bytes that never arrive raises ProtocolError.
    """

    conn: TcpConnection
    progress: NullProgress = field(default_factory=NullProgress)
    sanitize_names: bool = False
    stats: TransferStats = field(default_factory=TransferStats)
    state: SessionState = SessionState.IDLE
    depth: int = 0

    def send_item(self, path: str | os.PathLike[str]) -> None:
        if self.state is SessionState.ENDED:
            raise ProtocolError("session already ended")

        path = os.fspath(path)
        try:
            st = os.stat(path)
        except OSError as exc:
            logging.error("cannot stat '%s': %s", path, exc)
            self.stats.errors += 1
            return

        if stat.S_ISDIR(st.st_mode):
            self._send_dir(path)
        elif stat.S_ISREG(st.st_mode):
            self._send_file(path, st)
        else:
            logging.warning("skipping '%s': not a regular file or directory", path)

    def end_session(self) -> TransferStats:
        if self.state is SessionState.ENDED:
            raise ProtocolError("session already ended")
        if self.depth:
            raise ProtocolError(f"cannot end session {self.depth} directories deep")
        self.conn.send_message(Message.end_session())
        self.state = SessionState.ENDED
        self.stats.end_ts = time.monotonic()
        return self.stats

    def _send_dir(self, path: str) -> None:
        try:
            entries = sorted(os.listdir(path))
        except OSError as exc:
            logging.error("cannot list directory '%s': %s", path, exc)
            self.stats.errors += 1
            return

        name = wire_name(path, self.sanitize_names)
        if not name:
            logging.error("cannot send '%s': no directory name", path)
            self.stats.errors += 1
            return

        self.conn.send_message(Message.begin_dir(name))
        self.depth += 1
        self.stats.directories += 1
        logging.info("sending directory '%s'", path)

        for entry in entries:
            self.send_item(os.path.join(path, entry))

        self.conn.send_message(Message.end_dir())
        self.depth -= 1

    def _send_file(self, path: str, st: os.stat_result) -> None:
        size = st.st_size
        if size == 0:
            logging.debug("ignoring empty file '%s'", path)
            return
        if size > MAX_SIZE:
            logging.error("cannot send '%s': %d bytes exceeds the protocol limit", path, size)
            self.stats.errors += 1
            return

        try:
            f = open(path, "rb")
        except OSError as exc:
            logging.error("cannot open '%s': %s", path, exc)
            self.stats.errors += 1
            return

        with f:
            name = wire_name(path, self.sanitize_names)
            mtime = min(max(int(st.st_mtime), 0), MAX_MTIME)
            self.conn.send_message(Message.file(size, name, mtime, is_executable(st)))
            self.state = SessionState.AWAITING_REPLY

            reply = self.conn.recv_message()
            if reply.kind is MessageType.SKIP:
                logging.info("skipping file '%s'", name)
                self.stats.files_skipped += 1
                self.state = SessionState.IDLE
                return
            if reply.kind is not MessageType.ACCEPT:
                raise ProtocolError(f"expected ACCEPT or SKIP, got {reply.kind.name}")
            if reply.size > size:
                raise ProtocolError(f"resume offset {reply.size} beyond end of '{name}' ({size} bytes)")

            self.state = SessionState.TRANSFERRING
            self._stream(f, name, size, reply.size)

        self.stats.files_transferred += 1
        self.state = SessionState.IDLE

    def _stream(self, f: BinaryIO, name: str, size: int, offset: int) -> None:
        if offset > 0:
            try:
                f.seek(offset)
            except OSError as exc:
                raise ProtocolError(f"cannot seek '{name}' to {offset}: {exc}") from exc
            logging.info("resuming '%s' at byte %d", name, offset)

        progress = ProgressState(name, size, offset)
        self.progress.start(progress)
        while progress.remaining > 0:
            try:
                chunk = f.read(min(BLOCK_SIZE, progress.remaining))
            except OSError as exc:
                raise ProtocolError(f"cannot read '{name}': {exc}") from exc
            if not chunk:
                raise ProtocolError(f"'{name}' shrank to {progress.completed} bytes during transfer")
            self.conn.send_all(chunk)
            progress.advance(len(chunk))
            self.progress.update(progress, len(chunk))
        self.progress.finish(progress)
        self.stats.bytes_transferred += progress.transferred
