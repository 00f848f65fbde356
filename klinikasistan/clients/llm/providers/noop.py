"""Stand-in oracle for deployments without a model key."""
from __future__ import annotations

from typing import List

from klinikasistan.clients.llm.base import BaseLLMClient, LLMMessage
from klinikasistan.core.exceptions import ConfigurationError


class NoOpLLMClient(BaseLLMClient):
    """Slash commands keep working; free text gets the parse-error help, the
    assistant apologises and reminders fall back to their templates."""

    @property
    def provider(self) -> str:
        return "noop"

    async def chat(self, messages: List[LLMMessage], *, json_output: bool = False) -> str:
        raise ConfigurationError("Dil modeli yapılandırılmadı (OPENAI_API_KEY veya GEMINI_API_KEY)")
