from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import IO, Optional

from ..errors import LockError
from .env import PATHS

logger = logging.getLogger(__name__)


def lock_path_for(device: str, lock_dir: str = PATHS.lock_dir) -> Path:
    name = device.strip("/").replace("/", "_") or "root"
    return Path(lock_dir) / f"zfs-bootstrap.{name}.lock"


class DeviceLock:
    """Advisory exclusive lock keyed by the target device path."""

    def __init__(self, device: str, *, lock_dir: str = PATHS.lock_dir) -> None:
        self.device = device
        self.path = lock_path_for(device, lock_dir)
        self._fh: Optional[IO[str]] = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(self.path, "w", encoding="utf-8")
        try:
            fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            fh.close()
            raise LockError(
                f"Another zfs-bootstrap run holds {self.device} (lockfile: {self.path})"
            ) from e
        fh.write(f"{os.getpid()}\n")
        fh.flush()
        self._fh = fh
        logger.info("Locked %s (%s)", self.device, self.path)

    def release(self) -> None:
        if self._fh is None:
            return
        fcntl.flock(self._fh, fcntl.LOCK_UN)
        self._fh.close()
        self._fh = None
        logger.info("Released lock on %s", self.device)

    @property
    def held(self) -> bool:
        return self._fh is not None

    def __enter__(self) -> "DeviceLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
