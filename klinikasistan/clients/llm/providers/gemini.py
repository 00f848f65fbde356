"""Google Gemini provider and its registry builder.

Gemini gets tools through the prompt rather than native declarations, so the
tool schemas stay the single OpenAI-style list the assistant builds.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from klinikasistan.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage, split_system
from klinikasistan.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

_TOOL_PICKER = """\
Bir klinik yönetim asistanı için araç seçicisin. Aşağıdaki araçlardan kullanıcının
isteğine en uygun olanı seç ve parametrelerini çıkar.

Araçlar (JSON şema):
{tools}

Önceki konuşma:
{history}

Kullanıcı isteği: {prompt}

SADECE şu biçimde tek bir JSON nesnesi döndür:
{{"tool_name": "<ad>", "arguments": {{...}}}}
Araç gerekmiyorsa: {{"tool_name": null, "arguments": {{}}}}"""


class GeminiLLMClient(BaseLLMClient):
    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        *,
        api_key: Optional[str] = None,
        temperature: float = 0.0,
    ) -> None:
        self._model = model
        self._temperature = temperature
        resolved_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        self._client = genai.Client(api_key=resolved_key)

    @property
    def provider(self) -> str:
        return "gemini"

    async def chat(self, messages: List[LLMMessage], *, json_output: bool = False) -> str:
        """System turns become the system instruction; assistant turns map to ``model``."""
        system, turns = split_system(messages)
        contents = [
            {"role": "model" if t["role"] == "assistant" else "user", "parts": [{"text": t["content"]}]}
            for t in turns
        ]
        cfg: Dict[str, Any] = {"temperature": self._temperature}
        if system:
            cfg["system_instruction"] = system
        if json_output:
            cfg["response_mime_type"] = "application/json"
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=genai_types.GenerateContentConfig(**cfg),
            )
        except genai_errors.APIError as exc:
            logger.warning("GeminiLLMClient: request to %s failed: %s", self._model, exc)
            raise ExternalServiceError("Dil modeli yanıt vermedi", cause=exc) from exc
        return response.text or ""

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
    ) -> Optional[FunctionCallResult]:
        if not tools:
            return None
        _, turns = split_system(conversation_history or [])
        history = "\n".join(f"{t['role']}: {t['content']}" for t in turns) or "(yok)"
        picker = _TOOL_PICKER.format(
            tools=json.dumps([t.get("function", t) for t in tools], ensure_ascii=False, indent=2),
            history=history,
            prompt=prompt,
        )
        raw = await self.chat([{"role": "user", "content": picker}], json_output=True)
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("GeminiLLMClient: tool choice is not JSON: %r", raw[:300])
            return None

        tool_name = parsed.get("tool_name") if isinstance(parsed, dict) else None
        if not tool_name:
            return None
        arguments = parsed.get("arguments")
        return FunctionCallResult(
            tool_name=str(tool_name),
            arguments=arguments if isinstance(arguments, dict) else {},
            raw_response=raw,
        )


def gemini_builder(config: Dict[str, Any]) -> GeminiLLMClient:
    return GeminiLLMClient(
        model=config.get("model", DEFAULT_MODEL),
        api_key=config.get("api_key"),
        temperature=float(config.get("temperature", 0.0)),
    )
