from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def target_path(root: str, rel: str) -> Path:
    return Path(root) / rel.lstrip("/")


def write_file(root: str, rel: str, contents: str, *, mode: Optional[int] = None, dry_run: bool = False) -> Path:
    p = target_path(root, rel)
    if dry_run:
        logger.info("Would write %s", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(p, mode)
    logger.info("Wrote %s", str(p))
    return p


def append_line(root: str, rel: str, line: str, *, dry_run: bool = False) -> bool:
    """Append a line unless an identical one is already there."""

    p = target_path(root, rel)
    if dry_run:
        logger.info("Would append to %s: %s", str(p), line)
        return True
    existing = p.read_text(encoding="utf-8") if p.exists() else ""
    if line in existing.splitlines():
        logger.info("%s already contains entry, leaving it", str(p))
        return False
    if existing and not existing.endswith("\n"):
        existing += "\n"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(existing + line + "\n", encoding="utf-8")
    return True


def make_dir(root: str, rel: str, *, mode: Optional[int] = None, dry_run: bool = False) -> Path:
    p = target_path(root, rel)
    if dry_run:
        logger.info("Would create %s", str(p))
        return p
    p.mkdir(parents=True, exist_ok=True)
    if mode is not None:
        os.chmod(p, mode)
    return p
