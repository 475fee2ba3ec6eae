from __future__ import annotations

import logging
import os
from pathlib import Path

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _open_log_file(log_path: str) -> tuple[logging.FileHandler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        # read-only live media, or no /var/log at all
        fallback = str(Path.cwd() / "zfs-bootstrap.log")
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    The log file always receives DEBUG, so command output ends up in it even
    when the console only shows ``level``.

    Returns the actual file path being used.
    """

    root = logging.getLogger()

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(root, "_zfs_bootstrap_configured", False):
        return getattr(root, "_zfs_bootstrap_log_path", log_path)

    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_zfs_bootstrap_configured", True)
    setattr(root, "_zfs_bootstrap_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
