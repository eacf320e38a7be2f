from __future__ import annotations
from typing import Optional

from langchain_openai import ChatOpenAI

from tools.config import Settings, get_settings, validate_api_key


def get_llm(settings: Optional[Settings] = None, *, model: Optional[str] = None, max_tokens: int = 600) -> Optional[ChatOpenAI]:
    """Chat model, or None when no usable API key is configured. Retries are handled by llm.retry."""
    settings = settings or get_settings()
    oa = settings.openai
    if not validate_api_key(oa.api_key):
        return None
    return ChatOpenAI(
        model=model or oa.model,
        temperature=0.2,
        max_tokens=max_tokens,
        timeout=oa.timeout,
        max_retries=0,
        api_key=oa.api_key,
    )
