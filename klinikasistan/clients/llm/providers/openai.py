"""OpenAI chat provider and its registry builder."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from klinikasistan.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage
from klinikasistan.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAILLMClient(BaseLLMClient):
    """Chat Completions client; also works against OpenAI-compatible gateways via ``base_url``."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            base_url=base_url,
        )

    @property
    def provider(self) -> str:
        return "openai"

    async def _create(self, messages: List[Dict[str, Any]], **extra: Any):
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            **extra,
        }
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        try:
            return await self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            logger.warning("OpenAILLMClient: request to %s failed: %s", self._model, exc)
            raise ExternalServiceError("Dil modeli yanıt vermedi", cause=exc) from exc

    async def chat(self, messages: List[LLMMessage], *, json_output: bool = False) -> str:
        extra: Dict[str, Any] = {"response_format": {"type": "json_object"}} if json_output else {}
        response = await self._create(list(messages), **extra)
        return response.choices[0].message.content or ""

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
    ) -> Optional[FunctionCallResult]:
        """Native tool calling; only the first tool call of the reply is used."""
        if not tools:
            return None
        messages: List[Dict[str, Any]] = [*(conversation_history or []), {"role": "user", "content": prompt}]
        response = await self._create(messages, tools=tools, tool_choice="auto")

        calls = response.choices[0].message.tool_calls
        if not calls:
            return None
        call = calls[0]
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning("OpenAILLMClient: unreadable arguments for tool %s", call.function.name)
            arguments = {}
        return FunctionCallResult(
            tool_name=call.function.name,
            arguments=arguments if isinstance(arguments, dict) else {},
            raw_response=call.function.arguments,
        )


def openai_builder(config: Dict[str, Any]) -> OpenAILLMClient:
    return OpenAILLMClient(
        model=config.get("model", DEFAULT_MODEL),
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),
        temperature=float(config.get("temperature", 0.0)),
        max_tokens=config.get("max_tokens"),
    )
