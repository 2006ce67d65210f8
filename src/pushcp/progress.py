from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field

from tqdm import tqdm


@dataclass(slots=True)
class TransferStats:
    files_transferred: int = 0
    files_skipped: int = 0
    directories: int = 0
    bytes_transferred: int = 0
    errors: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes_transferred * 8 / 1_000_000) / self.duration_s

    def as_dict(self) -> dict:
        return {
            "files": self.files_transferred,
            "skipped": self.files_skipped,
            "directories": self.directories,
            "bytes": self.bytes_transferred,
            "errors": self.errors,
            "seconds": self.duration_s,
            "mbps": self.throughput_mbps,
        }


@dataclass(slots=True)
class ProgressState:
    """Counters for a single file transfer, starting at the resume offset."""

    name: str
    total: int
    offset: int = 0
    completed: int = field(init=False)
    started: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.completed = self.offset

    @property
    def remaining(self) -> int:
        return self.total - self.completed

    @property
    def transferred(self) -> int:
        return self.completed - self.offset

    @property
    def elapsed_s(self) -> float:
        return max(time.monotonic() - self.started, 1e-6)

    def advance(self, count: int) -> None:
        self.completed += count


class NullProgress:
    """Reporter that renders nothing."""

    def start(self, state: ProgressState) -> None:
        pass

    def update(self, state: ProgressState, count: int) -> None:
        pass

    def finish(self, state: ProgressState) -> None:
        pass


class TqdmProgress(NullProgress):
    def __init__(self, file=None):
        self.file = file or sys.stderr
        self._bar: tqdm | None = None

    def start(self, state: ProgressState) -> None:
        logging.info("transferring '%s' (%d bytes)", state.name, state.total)
        self._bar = tqdm(
            total=state.total,
            initial=state.offset,
            desc=state.name,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            file=self.file,
            leave=False,
        )

    def update(self, state: ProgressState, count: int) -> None:
        if self._bar is not None:
            self._bar.update(count)

    def finish(self, state: ProgressState) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
        elapsed = state.elapsed_s
        logging.info(
            "completed %sB in %s (average rate: %sB/s)",
            tqdm.format_sizeof(state.transferred, divisor=1024),
            tqdm.format_interval(elapsed),
            tqdm.format_sizeof(state.transferred / elapsed, divisor=1024),
        )
