from __future__ import annotations

import asyncio
import time
from typing import Any

import aiohttp
from fastapi import FastAPI, Request, Response
from twilio.rest import Client
from twilio.twiml.messaging_response import MessagingResponse

from macla.config.settings import WHATSAPP_CHUNK_LEN, WHATSAPP_SESSION_HOURS
from macla.core.runtime import Services
from macla.datamodel import ChannelType
from macla.errors import CollaboratorError, DEFAULT_USER_MESSAGE
from macla.logger import logger
from macla.world.directory import DeliveryTarget


def split_for_whatsapp(text: str, max_len: int = 1200) -> list[str]:
    """Split on line boundaries into chunks of at most max_len characters.

    A single line longer than max_len is kept whole.
    """
    parts: list[str] = []
    chunk = ""
    for line in text.split("\n"):
        if chunk and len(chunk) + 1 + len(line) > max_len:
            parts.append(chunk)
            chunk = line
        else:
            chunk = f"{chunk}\n{line}" if chunk else line
    if chunk:
        parts.append(chunk)
    return parts


def twiml_message(*messages: str) -> Response:
    resp = MessagingResponse()
    for message in messages:
        resp.message(message)
    return Response(content=str(resp), media_type="text/xml")


class WhatsAppSender:
    """Outbound WhatsApp messages through the Twilio REST API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self.client = Client(account_sid, auth_token)
        self.from_number = from_number

    def _create(self, to: str, body: str) -> str:
        message = self.client.messages.create(from_=self.from_number, to=to, body=body)
        return message.sid

    async def send(self, to: str, body: str) -> str:
        try:
            sid = await asyncio.to_thread(self._create, to, body)
        except Exception as e:
            raise CollaboratorError("twilio.messages", str(e)) from e
        logger.debug(f"WhatsApp message sent: to={to}, sid={sid}")
        return sid


class WhatsAppTarget(DeliveryTarget):
    """Asynchronous address, open until `session_hours` after the sender's last message.

    WhatsApp only accepts free-form business messages inside that window.
    """

    def __init__(self, address: str, sender: WhatsAppSender, session_hours: float = WHATSAPP_SESSION_HOURS) -> None:
        self.address = address
        self.sender = sender
        self.expires_at = time.monotonic() + session_hours * 3600

    @property
    def is_open(self) -> bool:
        return time.monotonic() < self.expires_at

    @property
    def label(self) -> str:
        return f"whatsapp:{self.address}"

    async def send_event(self, event: str, data: Any) -> None:
        text = data.get("text", "") if isinstance(data, dict) else str(data)
        await self.sender.send(self.address, f"⏰ Recordatorio: {text}")


async def download_media(url: str, account_sid: str, auth_token: str) -> bytes:
    auth = aiohttp.BasicAuth(account_sid, auth_token) if account_sid else None
    async with aiohttp.ClientSession() as session:
        async with session.get(url, auth=auth) as resp:
            resp.raise_for_status()
            return await resp.read()


async def _transcribe_media(services: Services, form: Any, account_sid: str, auth_token: str) -> str:
    try:
        num_media = int(form.get("NumMedia") or "0")
    except ValueError:
        num_media = 0
    if num_media <= 0:
        return ""

    content_type = str(form.get("MediaContentType0") or "")
    media_url = form.get("MediaUrl0")
    if not content_type.startswith("audio") or not media_url:
        return ""

    try:
        audio = await download_media(str(media_url), account_sid, auth_token)
        extension = content_type.split("/")[-1].split(";")[0] or "ogg"
        return await services.llm.transcribe(audio, filename=f"wa-audio.{extension}")
    except Exception as e:
        logger.error(f"WhatsApp audio transcription failed: {e}")
        return ""


def register_fastapi_routes(
    app: FastAPI,
    services: Services,
    account_sid: str = "",
    auth_token: str = "",
    chunk_len: int = WHATSAPP_CHUNK_LEN,
    session_hours: float = WHATSAPP_SESSION_HOURS,
) -> None:
    @app.post("/webhook/whatsapp")
    async def whatsapp_webhook(request: Request) -> Response:
        try:
            form = await request.form()
            identity = str(form.get("From") or "").strip() or "unknown"
            user_message = str(form.get("Body") or "")

            transcript = await _transcribe_media(services, form, account_sid, auth_token)
            if transcript:
                user_message = f"{user_message} {transcript}".strip()

            target: WhatsAppTarget | None = None
            if services.whatsapp_sender is not None and identity != "unknown":
                target = WhatsAppTarget(identity, services.whatsapp_sender, session_hours)
                services.directory.register(identity, target)

            reply = await services.assistant.handle_message(identity, user_message, ChannelType.WHATSAPP, target=target)
            return twiml_message(*split_for_whatsapp(reply, chunk_len))
        except Exception as e:
            logger.opt(exception=e).error(f"WhatsApp webhook failed: {e}")
            return twiml_message(DEFAULT_USER_MESSAGE)


__all__ = [
    "WhatsAppSender", "WhatsAppTarget", "split_for_whatsapp",
    "download_media", "register_fastapi_routes",
]
