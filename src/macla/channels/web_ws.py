from __future__ import annotations

import asyncio
import datetime
import json
import uuid
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from macla.config.settings import USER_TIMEZONE, WEB_WS_PATH
from macla.core.runtime import Services
from macla.datamodel import ChannelType
from macla.errors import InvalidReminderTime
from macla.logger import logger
from macla.utils import parse_when_to_ms
from macla.world.directory import DeliveryTarget


class WebSession(DeliveryTarget):
    """One browser connection. Doubles as the delivery target for its identity."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex[:12]
        self.identity = f"anon-{self.connection_id}"
        self.send_lock = asyncio.Lock()
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def label(self) -> str:
        return f"web:{self.connection_id}"

    def close(self) -> None:
        self._open = False

    async def send_event(self, event: str, data: Any) -> None:
        if not self._open:
            raise RuntimeError(f"Web session {self.connection_id} is closed")
        async with self.send_lock:
            await self.websocket.send_text(json.dumps({"event": event, "data": data}, ensure_ascii=False))


FrameHandler = Callable[[Services, WebSession, Any], Awaitable[None]]


async def _send_error(session: WebSession, message: str) -> None:
    await session.send_event("error", {"message": message})


async def _handle_whoami(services: Services, session: WebSession, data: Any) -> None:
    raw = data.get("identity") if isinstance(data, dict) else data
    identity = str(raw).strip() if raw is not None else ""
    if identity == "":
        identity = f"anon-{session.connection_id}"

    if identity != session.identity:
        services.directory.unregister(session.identity, session)
        session.identity = identity
    services.directory.register(identity, session)

    user = services.users.ensure_user(identity)
    logger.info(f"Web session bound: connection={session.connection_id}, identity={identity}")
    await session.send_event("whoami", {"identity": identity, "prefs": user.prefs})


async def _handle_send_message(services: Services, session: WebSession, data: Any) -> None:
    message = data.get("message") if isinstance(data, dict) else data
    if not isinstance(message, str) or message.strip() == "":
        await _send_error(session, "Mensaje vacío")
        return

    reply = await services.assistant.handle_message(
        session.identity, message, ChannelType.WEB, target=session,
    )
    await session.send_event("message_response", {
        "message": reply,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    })


async def _handle_reminder_create(services: Services, session: WebSession, data: Any) -> None:
    if not isinstance(data, dict):
        await _send_error(session, "reminder:create requires {text, when}")
        return
    text = str(data.get("text") or "").strip()
    if text == "":
        await _send_error(session, "reminder:create requires a text")
        return
    try:
        due_at = parse_when_to_ms(data.get("when"), USER_TIMEZONE)
    except InvalidReminderTime as e:
        logger.warning(f"Rejected reminder:create from {session.identity}: {e.message}")
        await _send_error(session, e.user_message)
        return

    reminder = services.reminders.create(session.identity, text, due_at)
    await session.send_event("reminder:created", reminder.to_dict())


async def _handle_reminder_list(services: Services, session: WebSession, data: Any) -> None:
    reminders = services.reminders.list_for(session.identity)
    await session.send_event("reminder:list", [r.to_dict() for r in reminders])


async def _handle_prefs_update(services: Services, session: WebSession, data: Any) -> None:
    if not isinstance(data, dict):
        await _send_error(session, "prefs:update requires an object")
        return
    user = services.users.merge_prefs(session.identity, data)
    await session.send_event("prefs", user.prefs)


_HANDLERS: dict[str, FrameHandler] = {
    "whoami": _handle_whoami,
    "send_message": _handle_send_message,
    "reminder:create": _handle_reminder_create,
    "reminder:list": _handle_reminder_list,
    "prefs:update": _handle_prefs_update,
}


async def handle_frame(services: Services, session: WebSession, payload: Any) -> None:
    if not isinstance(payload, dict):
        await _send_error(session, "Frames must be JSON objects")
        return

    event = str(payload.get("event", ""))
    handler = _HANDLERS.get(event)
    if handler is None:
        await _send_error(session, f"Unknown event: {event}")
        return
    await handler(services, session, payload.get("data"))


def register_fastapi_routes(app: FastAPI, services: Services) -> None:
    @app.websocket(WEB_WS_PATH)
    async def web_chat_ws(websocket: WebSocket):
        await websocket.accept()
        session = WebSession(websocket)
        services.directory.register(session.identity, session)
        logger.info(f"Web client connected: {session.connection_id}")

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    payload = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Received unparsable web frame, ignored")
                    continue
                try:
                    await handle_frame(services, session, payload)
                except WebSocketDisconnect:
                    raise
                except Exception as e:
                    logger.opt(exception=e).error(f"Web frame handling failed: connection={session.connection_id}, error={e}")
                    await _send_error(session, "Error procesando el mensaje")
        except WebSocketDisconnect:
            logger.info(f"Web client disconnected: {session.connection_id}")
        except Exception as e:
            logger.opt(exception=e).error(f"Web socket error: connection={session.connection_id}, error={e}")
        finally:
            session.close()
            services.directory.unregister(session.identity, session)


__all__ = ["WebSession", "handle_frame", "register_fastapi_routes"]
