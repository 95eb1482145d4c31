"""Event bus module: the Bus class and the event name set E.

Handlers registered here run inline on emit, so the reminder core can emit
from synchronous code. Keep handlers synchronous and cheap (counters, logging);
anything that needs I/O belongs in the component that owns it.
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Callable

from macla.logger import logger

Handler = Callable[..., None]


# Event names live here
class E:
    MESSAGE_RECEIVED = "message.received"
    REMINDER_CREATED = "reminder.created"
    REMINDER_FIRED = "reminder.fired"
    EVENT_REMINDER_SCHEDULED = "event_reminder.scheduled"
    EVENT_REMINDER_FIRED = "event_reminder.fired"


class Bus(AsyncIOEventEmitter):
    def on(self, event: str) -> Callable[[Handler], Handler]:
        """Decorator that registers an event handler"""
        def decorator(handler: Handler) -> Handler:
            logger.debug(f"Registering event handler: {event} -> {handler.__name__}")
            super(Bus, self).on(event, handler)
            return handler

        return decorator


bus = Bus()

__all__ = ["bus", "E", "Bus"]
