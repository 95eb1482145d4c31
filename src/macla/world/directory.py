"""Recipient directory: identity -> currently reachable delivery target.

Nothing here is persisted; membership follows open sessions. At most one
target is active per identity, a newer registration replaces the older one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from macla.logger import logger


class DeliveryTarget(ABC):
    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    @property
    @abstractmethod
    def label(self) -> str:
        pass

    @abstractmethod
    async def send_event(self, event: str, data: dict[str, Any]) -> None:
        pass


class RecipientDirectory:
    def __init__(self) -> None:
        self._targets: dict[str, DeliveryTarget] = {}

    def register(self, identity: str, target: DeliveryTarget) -> None:
        self.prune()
        old = self._targets.get(identity)
        self._targets[identity] = target
        if old is not None and old is not target:
            logger.debug(f"Directory target replaced: identity={identity}, old={old.label}, new={target.label}")
        else:
            logger.debug(f"Directory target registered: identity={identity}, target={target.label}")

    def unregister(self, identity: str, target: DeliveryTarget) -> bool:
        """Drop the entry only if it still points at `target`"""
        if self._targets.get(identity) is target:
            del self._targets[identity]
            logger.debug(f"Directory target removed: identity={identity}, target={target.label}")
            return True
        return False

    def resolve(self, identity: str) -> DeliveryTarget | None:
        target = self._targets.get(identity)
        if target is None:
            return None
        if not target.is_open:
            # closed without unregistering; never hand out a dead handle
            del self._targets[identity]
            return None
        return target

    def prune(self) -> int:
        """Forget targets that are no longer open; returns how many were dropped"""
        closed = [identity for identity, target in self._targets.items() if not target.is_open]
        for identity in closed:
            del self._targets[identity]
        if closed:
            logger.debug(f"Directory pruned {len(closed)} closed target(s)")
        return len(closed)

    def identities(self) -> list[str]:
        return [identity for identity, target in self._targets.items() if target.is_open]

    def get_status(self) -> dict[str, object]:
        return {"registered": len(self.identities())}


__all__ = ["DeliveryTarget", "RecipientDirectory"]
