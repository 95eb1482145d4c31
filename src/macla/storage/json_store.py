"""Whole-document JSON store.

The process holds the only in-memory copy of `{"users": {...}, "reminders": [...]}`.
It is loaded once at startup and rewritten in full after every mutation
(temp file + os.replace, never an append).
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from macla.logger import logger


def _empty_snapshot() -> dict[str, Any]:
    return {"users": {}, "reminders": []}


def _usable_reminders(items: list[Any]) -> list[dict[str, Any]]:
    """Drop records the dispatcher cannot handle; a bad row must not block the rest"""
    kept = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            logger.warning(f"Dropping reminder #{index}: not an object")
            continue
        due_at = raw.get("dueAt")
        if isinstance(due_at, bool) or not isinstance(due_at, int):
            logger.warning(f"Dropping reminder #{index} (id={raw.get('id')!r}): bad dueAt {due_at!r}")
            continue
        if not isinstance(raw.get("id"), str) or raw["id"] == "":
            logger.warning(f"Dropping reminder #{index}: missing id")
            continue
        kept.append(raw)
    return kept


class JsonStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.data: dict[str, Any] = _empty_snapshot()
        self.last_save_ok: bool | None = None

    @property
    def users(self) -> dict[str, Any]:
        return self.data["users"]

    @property
    def reminders(self) -> list[dict[str, Any]]:
        return self.data["reminders"]

    def load(self) -> None:
        if not self.path.exists():
            logger.info(f"Store file not found, starting empty: {self.path}")
            self.data = _empty_snapshot()
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read store file {self.path}, starting empty: {e}")
            self.data = _empty_snapshot()
            return

        if not isinstance(raw, dict):
            logger.error(f"Store file {self.path} is not a JSON object, starting empty")
            self.data = _empty_snapshot()
            return

        users = raw.get("users")
        reminders = raw.get("reminders")
        if not isinstance(users, dict):
            users = {}
        if not isinstance(reminders, list):
            reminders = []
        reminders = _usable_reminders(reminders)
        self.data = {"users": users, "reminders": reminders}
        logger.info(f"Store loaded: users={len(users)}, reminders={len(reminders)}")

    def save(self) -> bool:
        """Rewrite the whole snapshot. Failures are logged, never raised."""
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(self.data, ensure_ascii=False, indent=2)
            with tmp_path.open("w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.opt(exception=e).error(f"Failed to write store file {self.path}: {e}")
            self.last_save_ok = False
            return False

        self.last_save_ok = True
        logger.trace(f"Store written: {self.path}")
        return True


__all__ = ["JsonStore"]
