import uuid

from macla.datamodel import Reminder
from macla.events import bus, E
from macla.logger import logger
from macla.storage.json_store import JsonStore


class ReminderRegistry:
    """Reminder lifecycle on top of the JSON store.

    Records live in `store.reminders` as plain dicts in insertion order; the
    Reminder objects handed out are copies, and state changes go back through
    this class.
    """

    def __init__(self, store: JsonStore) -> None:
        self.store = store

    def _raw_by_id(self, reminder_id: str) -> dict | None:
        for raw in self.store.reminders:
            if raw.get("id") == reminder_id:
                return raw
        return None

    def create(self, identity: str, text: str, due_at: int) -> Reminder:
        """Append a pending reminder and persist. A past due_at is immediately due."""
        reminder = Reminder(
            id=f"r_{uuid.uuid4().hex}",
            identity=identity,
            text=text,
            due_at=int(due_at),
            done=False,
        )
        self.store.reminders.append(reminder.to_dict())
        self.store.save()
        logger.trace(f"Reminder created: id={reminder.id}, identity={identity}, due_at={reminder.due_at}")
        bus.emit(E.REMINDER_CREATED, reminder)
        return reminder

    def get(self, reminder_id: str) -> Reminder | None:
        raw = self._raw_by_id(reminder_id)
        return Reminder.from_dict(raw) if raw is not None else None

    def due_reminders(self, now: int) -> list[Reminder]:
        """Pending reminders with due_at <= now, in insertion order"""
        return [
            Reminder.from_dict(raw)
            for raw in self.store.reminders
            if not raw.get("done", False) and int(raw.get("dueAt", 0)) <= now
        ]

    def mark_fired(self, reminder: Reminder) -> bool:
        """Set done. Returns True only on the pending -> done transition; does not persist."""
        raw = self._raw_by_id(reminder.id)
        if raw is None:
            logger.warning(f"mark_fired on unknown reminder: id={reminder.id}")
            return False
        reminder.done = True
        if raw.get("done", False):
            return False
        raw["done"] = True
        return True

    def list_for(self, identity: str) -> list[Reminder]:
        return [Reminder.from_dict(raw) for raw in self.store.reminders if raw.get("identity") == identity]

    def persist(self) -> bool:
        return self.store.save()


__all__ = ["ReminderRegistry"]
