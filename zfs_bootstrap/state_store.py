from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_record(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    if _detect_format(p) in {"yaml", "yml"}:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"Run record must be an object/dict, got {type(data)}")
    return data


def save_record(path: str, record: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(record, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(record, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Run record written to %s", p)


def new_record(config: Dict[str, Any]) -> Dict[str, Any]:
    """A fresh run record. ``config`` must already be redacted."""

    return {
        "version": 1,
        "config": config,
        "execution": {
            "current_step": None,
            "completed_steps": [],
            "failed_step": None,
            "errors": [],
            "decisions": {},
        },
    }


def mark_step_completed(record: Dict[str, Any], step_id: str) -> None:
    exe = record.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def mark_step_failed(record: Dict[str, Any], step_id: str, error: BaseException) -> None:
    exe = record.setdefault("execution", {})
    exe["failed_step"] = step_id
    exe.setdefault("errors", []).append(
        {"step": step_id, "type": type(error).__name__, "error": str(error)}
    )

