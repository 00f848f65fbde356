"""
Provider name -> client builder.

The classifier and the assistant never pick a provider themselves; startup
calls build_llm_client_from_env() once and hands the client around.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from klinikasistan.clients.llm.base import BaseLLMClient
from klinikasistan.clients.llm.config import LLMConfig
from klinikasistan.clients.llm.providers.gemini import gemini_builder
from klinikasistan.clients.llm.providers.noop import NoOpLLMClient
from klinikasistan.clients.llm.providers.openai import openai_builder

logger = logging.getLogger(__name__)

Builder = Callable[[Dict[str, Any]], BaseLLMClient]


class LLMRegistry:
    def __init__(self, builders: Optional[Dict[str, Builder]] = None) -> None:
        self._builders: Dict[str, Builder] = dict(builders or {})

    def register(self, provider: str, builder: Builder) -> None:
        self._builders[provider] = builder

    def build(self, provider: str, config: Dict[str, Any]) -> BaseLLMClient:
        """Raises KeyError for an unregistered provider."""
        try:
            builder = self._builders[provider]
        except KeyError:
            raise KeyError(f"Unknown LLM provider: {provider!r}. Registered: {sorted(self._builders)}") from None
        return builder(config)


default_registry = LLMRegistry({"openai": openai_builder, "gemini": gemini_builder})


def build_llm_client_from_env(registry: Optional[LLMRegistry] = None) -> BaseLLMClient:
    """Client for the env-configured provider, or the no-op client when no key is set."""
    config = LLMConfig.from_env()
    if config is None:
        logger.info("LLM: no OPENAI_API_KEY / GEMINI_API_KEY set, using no-op client")
        return NoOpLLMClient()
    client = (registry or default_registry).build(config.provider, config.to_dict())
    logger.info("LLM: using %s (%s)", config.provider, config.model)
    return client
