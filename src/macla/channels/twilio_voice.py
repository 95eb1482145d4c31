from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

from fastapi import FastAPI, Request, Response
from twilio.twiml.voice_response import VoiceResponse

from macla.config.prompts import VOICE_SYSTEM_PROMPT
from macla.core.runtime import Services
from macla.datamodel import ChannelType, IncomingMessage
from macla.events import bus, E
from macla.logger import logger

NOT_UNDERSTOOD = "No entendí bien."
VOICE_APOLOGY = "Perdón, tuve un problema. Intentá de nuevo."


def _write_audio(path: Path, audio: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(audio)


def _record_next_turn(vr: VoiceResponse) -> None:
    vr.record(action="/process_voice", transcribe=True, max_length=10, play_beep=True)


def register_fastapi_routes(app: FastAPI, services: Services, tts_dir: Path, public_base_url: str = "") -> None:
    @app.post("/process_voice")
    async def process_voice(request: Request) -> Response:
        form = await request.form()
        user_text = str(form.get("TranscriptionText") or "").strip() or NOT_UNDERSTOOD
        caller = str(form.get("From") or "unknown")
        bus.emit(E.MESSAGE_RECEIVED, IncomingMessage(channel_type=ChannelType.VOICE, identity=caller, content=user_text))
        logger.info(f"Voice turn from {caller}: {user_text!r}")

        vr = VoiceResponse()
        try:
            reply = await services.llm.chat(
                [
                    {"role": "system", "content": VOICE_SYSTEM_PROMPT},
                    {"role": "user", "content": user_text},
                ],
                max_tokens=80,
            )
        except Exception as e:
            logger.error(f"Voice reply failed: caller={caller}, error={e}")
            vr.say(VOICE_APOLOGY, language="es-MX")
            _record_next_turn(vr)
            return Response(content=str(vr), media_type="text/xml")

        try:
            audio = await services.llm.synthesize_speech(reply)
            filename = f"{uuid.uuid4()}.mp3"
            await asyncio.to_thread(_write_audio, tts_dir / filename, audio)
            base_url = public_base_url or str(request.base_url).rstrip("/")
            vr.play(f"{base_url}/tts/{filename}")
        except Exception as e:
            logger.warning(f"Speech synthesis failed, falling back to <Say>: {e}")
            vr.say(reply, language="es-MX")

        _record_next_turn(vr)
        return Response(content=str(vr), media_type="text/xml")


__all__ = ["register_fastapi_routes"]
