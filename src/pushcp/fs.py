from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import List

from .errors import ProtocolError


def check_name(name: str) -> str:
    if name in ("", ".", "..") or "/" in name or os.sep in name or "\0" in name:
        raise ProtocolError(f"illegal item name from peer: {name!r}")
    return name


def local_size(path: Path) -> int:
    """Size of an existing regular file, 0 when it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0


def apply_metadata(path: Path, mtime: int, executable: bool) -> None:
    if executable:
        mode = path.stat().st_mode
        # grant execute wherever read is granted, like chmod +x under a umask
        os.chmod(path, mode | ((mode & 0o444) >> 2))
    if mtime:
        os.utime(path, (mtime, mtime))


def is_executable(st: os.stat_result) -> bool:
    return bool(st.st_mode & stat.S_IXUSR)


class DirectoryCursor:
    """Explicit working directory for one session.

    The receiver follows the sender's tree by entering and leaving
    directories on this cursor instead of changing the process-wide
    current directory, so several sessions can share one process.
    """

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)
        self._stack: List[str] = []

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def current(self) -> Path:
        return self.root.joinpath(*self._stack)

    def resolve(self, name: str) -> Path:
        return self.current / check_name(name)

    def enter(self, name: str, create: bool = False) -> Path:
        target = self.resolve(name)
        if create:
            try:
                target.mkdir(mode=0o755)
            except FileExistsError:
                pass
            except OSError as exc:
                raise ProtocolError(f"cannot create directory '{target}': {exc}") from exc
        if not target.is_dir():
            raise ProtocolError(f"cannot enter '{target}': not a directory")
        self._stack.append(name)
        return target

    def leave(self) -> Path:
        if not self._stack:
            raise ProtocolError("directory stack underflow: already at session root")
        self._stack.pop()
        return self.current
