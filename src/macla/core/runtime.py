from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from macla.calendar.google_calendar import GoogleCalendarClient
from macla.core.assistant import Assistant
from macla.llm.base import LLMClient
from macla.storage.json_store import JsonStore
from macla.storage.reminder import ReminderRegistry
from macla.storage.user import UserRegistry
from macla.world.directory import RecipientDirectory
from macla.world.event_reminder import EventReminderScheduler
from macla.world.reminder import ReminderDispatcher

if TYPE_CHECKING:
    from macla.channels.twilio_whatsapp import WhatsAppSender


@dataclass
class RuntimeControl:
    shutdown_event: asyncio.Event
    started_at: float


@dataclass
class Services:
    """Everything the channels need, built once in main and shared by reference."""
    store: JsonStore
    users: UserRegistry
    reminders: ReminderRegistry
    directory: RecipientDirectory
    dispatcher: ReminderDispatcher
    event_reminders: EventReminderScheduler
    llm: LLMClient
    assistant: Assistant
    calendar: GoogleCalendarClient | None = None
    whatsapp_sender: WhatsAppSender | None = None


__all__ = ["RuntimeControl", "Services"]
