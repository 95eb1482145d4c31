"""One-shot reminders derived from calendar events.

fire_at = event start - lead. The target is bound when the timer is set and is
not looked up again at fire time; a stale handle fails softly.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from macla.events import bus, E
from macla.logger import logger
from macla.utils import now_ms, parse_iso_to_ms
from macla.world.directory import DeliveryTarget
from macla.world.reminder import FIRE_EVENT


@dataclass
class ScheduledEventReminder:
    event_id: str
    fire_at: int  # epoch milliseconds
    task: asyncio.Task

    def cancel(self) -> bool:
        if self.task.done():
            return False
        return self.task.cancel()


class EventReminderScheduler:
    def __init__(self, default_tz: str = "UTC") -> None:
        self.default_tz = default_tz
        self._pending: dict[str, ScheduledEventReminder] = {}

    def schedule(
        self,
        event_id: str,
        start_iso: str,
        lead_minutes: int,
        target: DeliveryTarget,
        text: str,
    ) -> ScheduledEventReminder | None:
        start_ms = parse_iso_to_ms(start_iso, self.default_tz)
        fire_at = start_ms - lead_minutes * 60 * 1000
        delay_ms = fire_at - now_ms()
        if delay_ms < 0:
            logger.info(f"Event reminder already past, not scheduled: event_id={event_id}, fire_at={fire_at}")
            return None

        self.cancel(event_id)
        task = asyncio.create_task(
            self._fire_later(event_id, delay_ms / 1000, target, text),
            name=f"event-reminder-{event_id}",
        )
        handle = ScheduledEventReminder(event_id=event_id, fire_at=fire_at, task=task)
        self._pending[event_id] = handle
        logger.info(f"Event reminder scheduled: event_id={event_id}, in={delay_ms / 1000:.0f}s, target={target.label}")
        bus.emit(E.EVENT_REMINDER_SCHEDULED, event_id, fire_at)
        return handle

    async def _fire_later(self, event_id: str, delay_seconds: float, target: DeliveryTarget, text: str) -> None:
        try:
            await asyncio.sleep(delay_seconds)
            try:
                await target.send_event(FIRE_EVENT, {"id": f"evt_{event_id}", "text": text})
                delivered = True
            except Exception as e:
                logger.warning(f"Event reminder delivery failed: event_id={event_id}, target={target.label}, error={e}")
                delivered = False
            bus.emit(E.EVENT_REMINDER_FIRED, event_id, delivered)
        finally:
            current = self._pending.get(event_id)
            if current is not None and current.task is asyncio.current_task():
                del self._pending[event_id]

    def cancel(self, event_id: str) -> bool:
        handle = self._pending.pop(event_id, None)
        if handle is None:
            return False
        cancelled = handle.cancel()
        if cancelled:
            logger.info(f"Event reminder cancelled: event_id={event_id}")
        return cancelled

    def pending(self) -> list[str]:
        return list(self._pending.keys())

    def get_status(self) -> dict[str, object]:
        return {"pending": len(self._pending)}

    async def shutdown(self) -> None:
        handles = list(self._pending.values())
        self._pending.clear()
        for handle in handles:
            handle.cancel()
        for handle in handles:
            try:
                await handle.task
            except asyncio.CancelledError:
                pass


__all__ = ["EventReminderScheduler", "ScheduledEventReminder"]
