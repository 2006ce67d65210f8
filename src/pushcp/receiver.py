from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field

from .constants import BLOCK_SIZE
from .errors import ProtocolError
from .fs import DirectoryCursor, apply_metadata, local_size
from .message import Message, MessageType
from .net import TcpConnection
from .progress import NullProgress, ProgressState, TransferStats


class SessionState(enum.Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting-reply"
    TRANSFERRING = "transferring"
    ENDED = "ended"


@dataclass(slots=True)
class Receiver:
    """Obeys sender requests, writing everything below ``cursor.root``."""

    conn: TcpConnection
    cursor: DirectoryCursor
    progress: NullProgress = field(default_factory=NullProgress)
    preserve_metadata: bool = True
    stats: TransferStats = field(default_factory=TransferStats)
    state: SessionState = SessionState.IDLE

    def run(self) -> TransferStats:
        while not self.receive_item():
            pass
        return self.stats

    def receive_item(self) -> bool:
        """Handle one request; return True once the sender ended the session."""
        if self.state is SessionState.ENDED:
            raise ProtocolError("session already ended")

        msg = self.conn.recv_message()

        if msg.kind is MessageType.FILE:
            self._receive_file(msg)
        elif msg.kind is MessageType.BEGIN_DIR:
            path = self.cursor.enter(msg.name, create=True)
            self.stats.directories += 1
            logging.info("entering directory '%s'", path)
        elif msg.kind is MessageType.END_DIR:
            self.cursor.leave()
        elif msg.kind is MessageType.END_SESSION:
            if self.cursor.depth:
                raise ProtocolError(f"session ended {self.cursor.depth} directories deep")
            self.state = SessionState.ENDED
            self.stats.end_ts = time.monotonic()
            return True
        else:
            raise ProtocolError(f"unexpected {msg.kind.name} message from sender")

        return False

    def _receive_file(self, msg: Message) -> None:
        path = self.cursor.resolve(msg.name)
        size = msg.size
        self.state = SessionState.AWAITING_REPLY

        if path.is_symlink() or (path.exists() and not path.is_file()):
            logging.warning("skipping '%s': not a regular file", path)
            self._skip()
            return

        offset = local_size(path)
        if offset >= size:
            logging.info("skipping file '%s'", path)
            self._skip()
            return

        try:
            out = open(path, "ab")
        except OSError as exc:
            logging.error("cannot open '%s' for writing: %s", path, exc)
            self.stats.errors += 1
            self._skip()
            return

        with out:
            self.conn.send_message(Message.accept(offset))
            self.state = SessionState.TRANSFERRING
            if offset:
                logging.info("resuming '%s' at byte %d", path, offset)

            progress = ProgressState(msg.name, size, offset)
            self.progress.start(progress)
            while progress.remaining > 0:
                chunk = self.conn.recv_exact(min(BLOCK_SIZE, progress.remaining))
                out.write(chunk)
                progress.advance(len(chunk))
                self.progress.update(progress, len(chunk))
            out.flush()
            self.progress.finish(progress)

        if self.preserve_metadata:
            try:
                apply_metadata(path, msg.mtime, msg.executable)
            except OSError as exc:
                logging.warning("cannot apply metadata to '%s': %s", path, exc)

        self.stats.files_transferred += 1
        self.stats.bytes_transferred += progress.transferred
        self.state = SessionState.IDLE

    def _skip(self) -> None:
        self.conn.send_message(Message.skip())
        self.stats.files_skipped += 1
        self.state = SessionState.IDLE
