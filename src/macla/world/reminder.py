"""Reminder dispatch loop.

Every `interval_seconds` a sweep picks up the due, unfired reminders, resolves
each owner through the RecipientDirectory, sends `reminder:fire` to whatever
target is reachable and marks the reminder fired.

Undelivered reminders follow `undelivered_policy`:
- "drop": fired anyway, never retried (at-most-once)
- "requeue": left pending until a target resolves on a later sweep
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List

from macla.datamodel import Reminder
from macla.events import bus, E
from macla.logger import logger
from macla.storage.reminder import ReminderRegistry
from macla.utils import now_ms
from macla.world.directory import RecipientDirectory

FIRE_EVENT = "reminder:fire"


@dataclass
class SweepResult:
    now: int
    fired: List[Reminder] = field(default_factory=list)
    delivered: List[Reminder] = field(default_factory=list)
    requeued: List[Reminder] = field(default_factory=list)


class ReminderDispatcher:
    def __init__(
        self,
        registry: ReminderRegistry,
        directory: RecipientDirectory,
        interval_seconds: float = 5.0,
        undelivered_policy: str = "drop",
    ) -> None:
        if undelivered_policy not in ("drop", "requeue"):
            raise ValueError(f"Unknown undelivered policy: {undelivered_policy}")
        self.registry = registry
        self.directory = directory
        self.interval_seconds = interval_seconds
        self.undelivered_policy = undelivered_policy
        self._sweep_lock = asyncio.Lock()
        self._shutdown_event: asyncio.Event | None = None
        self._last_sweep_at_epoch: float | None = None

    def get_status(self) -> dict[str, object]:
        running = self._shutdown_event is not None and not self._shutdown_event.is_set()
        return {
            "running": running,
            "last_sweep_at_epoch": self._last_sweep_at_epoch,
            "interval_seconds": self.interval_seconds,
            "policy": self.undelivered_policy,
        }

    async def sweep(self, now: int | None = None) -> SweepResult:
        async with self._sweep_lock:
            if now is None:
                now = now_ms()
            self._last_sweep_at_epoch = time.time()
            result = SweepResult(now=now)

            for reminder in self.registry.due_reminders(now):
                target = self.directory.resolve(reminder.identity)
                delivered = False
                if target is not None:
                    try:
                        await target.send_event(FIRE_EVENT, reminder.to_dict() | {"done": True})
                        delivered = True
                    except Exception as e:
                        # attempted counts as fired; no retry
                        logger.warning(f"Reminder delivery failed: id={reminder.id}, target={target.label}, error={e}")
                elif self.undelivered_policy == "requeue":
                    logger.debug(f"No target for reminder, keeping it pending: id={reminder.id}, identity={reminder.identity}")
                    result.requeued.append(reminder)
                    continue
                else:
                    logger.info(f"No target for reminder, dropping delivery: id={reminder.id}, identity={reminder.identity}")

                if self.registry.mark_fired(reminder):
                    result.fired.append(reminder)
                    if delivered:
                        result.delivered.append(reminder)
                    bus.emit(E.REMINDER_FIRED, reminder, delivered)

            if result.fired:
                self.registry.persist()
                logger.info(f"Reminder sweep: fired={len(result.fired)}, delivered={len(result.delivered)}")
            return result

    async def main_loop(self, shutdown_event: asyncio.Event) -> None:
        self._shutdown_event = shutdown_event
        logger.info(f"Reminder loop started: interval={self.interval_seconds}s, policy={self.undelivered_policy}")

        while not shutdown_event.is_set():
            try:
                await self.sweep()
            except Exception as e:
                logger.opt(exception=e).error(f"Reminder sweep failed: {e}")

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Reminder loop stopped")


__all__ = ["ReminderDispatcher", "SweepResult", "FIRE_EVENT"]
