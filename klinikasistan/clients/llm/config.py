from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

_DEFAULT_MODELS = {"openai": "gpt-4o-mini", "gemini": "gemini-2.0-flash"}


@dataclass
class LLMConfig:
    """Provider settings for the oracle client."""

    provider: str
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_tokens: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Builder kwargs without None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_env(cls) -> Optional["LLMConfig"]:
        """OPENAI_API_KEY wins over GEMINI_API_KEY / GOOGLE_API_KEY; None when neither is set."""
        openai_key = os.environ.get("OPENAI_API_KEY", "").strip()
        gemini_key = (
            os.environ.get("GEMINI_API_KEY", "").strip()
            or os.environ.get("GOOGLE_API_KEY", "").strip()
        )
        if openai_key:
            provider, key = "openai", openai_key
        elif gemini_key:
            provider, key = "gemini", gemini_key
        else:
            return None
        return cls(
            provider=provider,
            model=os.environ.get("LLM_MODEL", "").strip() or _DEFAULT_MODELS[provider],
            api_key=key,
            base_url=(os.environ.get("OPENAI_BASE_URL") or None) if provider == "openai" else None,
        )
