from abc import ABC, abstractmethod
from typing import List, Literal, TypedDict

from macla.datamodel import Intent

__all__ = ["LLMClient", "LLMMessage"]

class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMClient(ABC):
    @abstractmethod
    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        pass

    @abstractmethod
    async def classify_intent(self, text: str) -> Intent:
        pass

    @abstractmethod
    async def synthesize_speech(self, text: str) -> bytes:
        pass

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "audio.ogg") -> str:
        pass
