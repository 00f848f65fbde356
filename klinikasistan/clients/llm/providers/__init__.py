"""LLM provider implementations."""
from klinikasistan.clients.llm.providers.gemini import GeminiLLMClient
from klinikasistan.clients.llm.providers.noop import NoOpLLMClient
from klinikasistan.clients.llm.providers.openai import OpenAILLMClient

__all__ = ["OpenAILLMClient", "GeminiLLMClient", "NoOpLLMClient"]
