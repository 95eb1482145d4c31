from typing import Any, Dict

from macla.datamodel import UserRecord
from macla.logger import logger
from macla.storage.json_store import JsonStore


class UserRegistry:
    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def _record(self, identity: str, raw: dict) -> UserRecord:
        prefs = raw.get("prefs")
        return UserRecord(identity=identity, prefs=dict(prefs) if isinstance(prefs, dict) else {})

    def get_user(self, identity: str) -> UserRecord | None:
        raw = self.store.users.get(identity)
        if raw is None:
            return None
        return self._record(identity, raw)

    def ensure_user(self, identity: str) -> UserRecord:
        """Create the user lazily on first contact"""
        raw = self.store.users.get(identity)
        if raw is None:
            logger.info(f"Creating user record: identity={identity}")
            raw = {"prefs": {}}
            self.store.users[identity] = raw
            self.store.save()
        return self._record(identity, raw)

    def merge_prefs(self, identity: str, prefs: Dict[str, Any]) -> UserRecord:
        """Shallow merge into existing prefs, never a wholesale replace"""
        raw = self.store.users.setdefault(identity, {"prefs": {}})
        current = raw.get("prefs")
        if not isinstance(current, dict):
            current = {}
            raw["prefs"] = current
        current.update(prefs)
        self.store.save()
        logger.trace(f"User prefs updated: identity={identity}, keys={list(prefs.keys())}")
        return self._record(identity, raw)


__all__ = ["UserRegistry"]
