"""Assistant core.

# Message pipeline
Every channel (web chat, WhatsApp, voice) hands a plain text message and the
sender identity to `Assistant.handle_message`:
1. Make sure the user record exists and note the channel and any name hint.
2. Classify the intent with the LLM (calendar_event / local_reminder / none).
3. calendar_event: create the calendar event and, when the channel gave us a
   delivery target, arm a one-shot reminder ahead of the start time.
4. local_reminder: store a reminder due LOCAL_REMINDER_DELAY_MINUTES from now;
   the dispatch loop delivers it.
5. Anything else: a regular chat reply with per-identity history.
Collaborator failures turn into a short apology, never an exception.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Dict, List

from macla.calendar.google_calendar import GoogleCalendarClient
from macla.config.prompts import CHAT_SYSTEM_PROMPT
from macla.datamodel import ChannelType, IncomingMessage, Intent
from macla.errors import DEFAULT_USER_MESSAGE
from macla.events import bus, E
from macla.llm.base import LLMClient, LLMMessage
from macla.logger import logger
from macla.storage.reminder import ReminderRegistry
from macla.storage.user import UserRegistry
from macla.utils import ms_to_local_str, ms_to_utc_iso, now_ms, parse_iso_to_ms
from macla.world.directory import DeliveryTarget
from macla.world.event_reminder import EventReminderScheduler

__all__ = ["Assistant", "ConversationEngine"]

_NAME_PATTERN = re.compile(r"(?:me llamo|soy)\s+([A-Za-zÁÉÍÓÚÑáéíóúñ]+(?:\s+[A-Za-zÁÉÍÓÚÑáéíóúñ]+)?)", re.IGNORECASE)

CALENDAR_FAILED_MESSAGE = "No pude agendar el evento en el calendario. Probá de nuevo en un rato."
REMINDER_SAVED_MESSAGE = "📝 Listo, te lo guardé como recordatorio."


def extract_name_hint(text: str) -> str | None:
    lowered = text.lower()
    if "me llamo" not in lowered and ("soy" not in lowered or "estoy" in lowered):
        return None
    match = _NAME_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip()


class ConversationEngine:
    """Chat history per conversation id, seeded with the persona prompt."""

    def __init__(self, llm: LLMClient, system_prompt: str = CHAT_SYSTEM_PROMPT, history_limit: int = 40) -> None:
        self.llm = llm
        self.system_prompt = system_prompt
        self.history_limit = history_limit
        self.conversations: Dict[str, List[LLMMessage]] = {}

    def _history(self, conversation_id: str) -> List[LLMMessage]:
        history = self.conversations.get(conversation_id)
        if history is None:
            history = [{"role": "system", "content": self.system_prompt}]
            self.conversations[conversation_id] = history
        return history

    def _trim(self, history: List[LLMMessage]) -> None:
        overflow = len(history) - 1 - self.history_limit
        if overflow > 0:
            del history[1:1 + overflow]  # keep the system prompt

    async def process_message(self, conversation_id: str, message: str) -> str:
        history = self._history(conversation_id)
        history.append({"role": "user", "content": message})
        try:
            reply = await self.llm.chat(history, max_tokens=250, temperature=0.9)
        except Exception:
            history.pop()  # the user turn is retried with the next message
            raise
        history.append({"role": "assistant", "content": reply})
        self._trim(history)
        return reply


class Assistant:
    def __init__(
        self,
        llm: LLMClient,
        reminders: ReminderRegistry,
        users: UserRegistry,
        calendar: GoogleCalendarClient | None = None,
        event_reminders: EventReminderScheduler | None = None,
        local_reminder_delay_minutes: int = 30,
        event_reminder_lead_minutes: int = 10,
        user_timezone: str = "UTC",
        history_limit: int = 40,
    ) -> None:
        self.llm = llm
        self.reminders = reminders
        self.users = users
        self.calendar = calendar
        self.event_reminders = event_reminders
        self.local_reminder_delay_minutes = local_reminder_delay_minutes
        self.event_reminder_lead_minutes = event_reminder_lead_minutes
        self.user_timezone = user_timezone
        self.conversations = ConversationEngine(llm, history_limit=history_limit)

    def _remember_contact(self, identity: str, text: str, channel: ChannelType) -> None:
        user = self.users.ensure_user(identity)
        updates: Dict[str, object] = {}
        if user.prefs.get("last_channel") != channel.value:
            updates["last_channel"] = channel.value
        name = extract_name_hint(text)
        if name and user.prefs.get("name") != name:
            updates["name"] = name
        if updates:
            self.users.merge_prefs(identity, updates)

    async def handle_message(
        self,
        identity: str,
        text: str,
        channel: ChannelType,
        target: DeliveryTarget | None = None,
    ) -> str:
        bus.emit(E.MESSAGE_RECEIVED, IncomingMessage(channel_type=channel, identity=identity, content=text))
        logger.info(f"Message from {identity} via {channel.value}: {text!r}")
        self._remember_contact(identity, text, channel)

        intent = Intent()
        try:
            intent = await self.llm.classify_intent(text)
        except Exception as e:
            logger.error(f"Intent classification failed: identity={identity}, error={e}")

        if intent.intent == "calendar_event" and intent.start_iso:
            return await self._handle_calendar_event(identity, intent, target)

        if intent.intent == "local_reminder":
            return self._handle_local_reminder(identity, text, intent)

        try:
            return await self.conversations.process_message(identity, text)
        except Exception as e:
            logger.error(f"Chat reply failed: identity={identity}, error={e}")
            return DEFAULT_USER_MESSAGE

    async def _handle_calendar_event(self, identity: str, intent: Intent, target: DeliveryTarget | None) -> str:
        if self.calendar is None:
            logger.warning("Calendar intent received but no calendar client is configured")
            return CALENDAR_FAILED_MESSAGE

        try:
            start_ms = parse_iso_to_ms(intent.start_iso, self.user_timezone)
            if intent.end_iso:
                end_ms = parse_iso_to_ms(intent.end_iso, self.user_timezone)
            else:
                end_ms = start_ms + int(timedelta(hours=1).total_seconds() * 1000)
            event = await self.calendar.create_event(
                summary=intent.summary,
                description=intent.description,
                start_iso=ms_to_utc_iso(start_ms),
                end_iso=ms_to_utc_iso(end_ms),
                attendees=intent.attendees,
            )
        except Exception as e:
            logger.error(f"Calendar event failed: identity={identity}, error={e}")
            return CALENDAR_FAILED_MESSAGE

        if target is not None and self.event_reminders is not None and self.event_reminder_lead_minutes > 0:
            self.event_reminders.schedule(
                event_id=event.id,
                start_iso=ms_to_utc_iso(start_ms),
                lead_minutes=self.event_reminder_lead_minutes,
                target=target,
                text=f"⏰ En {self.event_reminder_lead_minutes} minutos: {event.summary}",
            )

        when = ms_to_local_str(start_ms, self.user_timezone)
        return f"✅ Agendado: *{event.summary}* el {when}"

    def _handle_local_reminder(self, identity: str, text: str, intent: Intent) -> str:
        due_at = now_ms() + self.local_reminder_delay_minutes * 60 * 1000
        self.reminders.create(identity, intent.summary or text, due_at)
        return REMINDER_SAVED_MESSAGE

