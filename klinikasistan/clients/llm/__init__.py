"""
LLM clients used as the language-understanding oracle.

Build from env with build_llm_client_from_env(); providers register builders
on default_registry (openai, gemini). Without a key a no-op client is used so
the classifier degrades to ERROR results instead of failing at startup.
"""
from klinikasistan.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage
from klinikasistan.clients.llm.config import LLMConfig
from klinikasistan.clients.llm.registry import (
    LLMRegistry,
    build_llm_client_from_env,
    default_registry,
)

__all__ = [
    "BaseLLMClient",
    "FunctionCallResult",
    "LLMMessage",
    "LLMConfig",
    "LLMRegistry",
    "default_registry",
    "build_llm_client_from_env",
]
