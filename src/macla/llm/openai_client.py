from macla.logger import logger
from macla.config.settings import (
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    LLM_CHAT_MODEL,
    LLM_TTS_MODEL,
    LLM_TTS_VOICE,
    LLM_STT_MODEL,
    LLM_STT_LANGUAGE,
)
from macla.config.prompts import INTENT_PARSER_PROMPT
from macla.datamodel import Intent
from macla.errors import CollaboratorError
from macla.llm.base import LLMClient, LLMMessage
from macla.metrics import runtime_metrics
from openai import AsyncOpenAI
from typing import Any, Dict, List
import json
import time


def parse_intent(raw: str) -> Intent:
    """Model output -> Intent; anything unparsable is intent 'none'"""
    try:
        data = json.loads(raw or "{}")
    except ValueError:
        logger.warning(f"Intent parser returned non-JSON output: {raw!r}")
        return Intent()
    if not isinstance(data, dict):
        return Intent()
    return Intent.from_dict(data)


class OpenAIClient(LLMClient):
    def __init__(
        self,
        api_key: str | None = OPENAI_API_KEY,
        base_url: str = OPENAI_BASE_URL,
        model: str = LLM_CHAT_MODEL,
        tts_model: str = LLM_TTS_MODEL,
        tts_voice: str = LLM_TTS_VOICE,
        stt_model: str = LLM_STT_MODEL,
        stt_language: str = LLM_STT_LANGUAGE,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.stt_model = stt_model
        self.stt_language = stt_language
        self.client = AsyncOpenAI(
            api_key=self.api_key or "missing",
            base_url=self.base_url
        )

    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": list(messages)}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if temperature is not None:
            kwargs["temperature"] = temperature

        logger.trace(f"LLM request BaseUrl:{self.base_url}; Model:{self.model}; Messages:{messages}")
        start_time = time.perf_counter()
        error = False
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            error = True
            raise CollaboratorError("openai.chat", str(e)) from e
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            runtime_metrics.record_llm_call(latency_ms=latency_ms, error=error)
            logger.debug(f"LLM response time: {latency_ms / 1000:.2f}s")

        logger.trace(f"LLM response: {response}")
        return response.choices[0].message.content or ""

    async def classify_intent(self, text: str) -> Intent:
        raw = await self.chat(
            [
                {"role": "system", "content": INTENT_PARSER_PROMPT},
                {"role": "user", "content": text},
            ],
            max_tokens=300,
            temperature=0,
        )
        return parse_intent(raw)

    async def synthesize_speech(self, text: str) -> bytes:
        try:
            response = await self.client.audio.speech.create(
                model=self.tts_model,
                voice=self.tts_voice,
                input=text,
            )
        except Exception as e:
            raise CollaboratorError("openai.speech", str(e)) from e
        return response.content

    async def transcribe(self, audio: bytes, filename: str = "audio.ogg") -> str:
        try:
            transcription = await self.client.audio.transcriptions.create(
                file=(filename, audio),
                model=self.stt_model,
                language=self.stt_language,
            )
        except Exception as e:
            raise CollaboratorError("openai.transcription", str(e)) from e
        return transcription.text or ""
