"""Oracle client interface.

The classifier, the reminder writer and the assistant only need two calls:
``chat`` for a reply to a list of turns, and ``function_call`` for picking one
tool. Providers raise ExternalServiceError when the model cannot be reached;
callers own the timeout and the fallback text.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TypedDict


class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class FunctionCallResult:
    """Tool picked by the model, with its parsed JSON arguments."""

    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    raw_response: Optional[str] = None


def split_system(messages: List[LLMMessage]) -> tuple[str, List[LLMMessage]]:
    """Joined system prompt and the remaining non-empty turns."""
    system: List[str] = []
    turns: List[LLMMessage] = []
    for msg in messages:
        content = (msg.get("content") or "").strip()
        if not content:
            continue
        if msg.get("role") == "system":
            system.append(content)
        else:
            turns.append({"role": msg.get("role", "user"), "content": content})
    return "\n\n".join(system), turns


class BaseLLMClient(ABC):
    @property
    @abstractmethod
    def provider(self) -> str:
        ...

    @abstractmethod
    async def chat(self, messages: List[LLMMessage], *, json_output: bool = False) -> str:
        """Reply to a system prompt plus conversation turns.

        With ``json_output`` the provider is asked for a single JSON object;
        the caller still validates the text it gets back.
        """

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
    ) -> Optional[FunctionCallResult]:
        """Ask the model to pick one tool for ``prompt``.

        Returns ``None`` when the model answers without a tool or the
        provider has no tool support.
        """
        return None
