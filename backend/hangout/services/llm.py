"""
Chat model construction for the AI candidate source
"""

import logging
from typing import Any

from hangout.core.config import LLM_TIMEOUT_SECONDS, OPEN_AI_API_KEY, OPEN_AI_MODEL

logger = logging.getLogger(__name__)


def build_chat_model(
    api_key: str | None = OPEN_AI_API_KEY,
    model: str = OPEN_AI_MODEL,
    timeout: float = LLM_TIMEOUT_SECONDS,
) -> tuple[Any | None, str]:
    """
    Return (llm, unavailable_reason). The model is None when no key is set or
    the client cannot be constructed; callers skip AI suggestions in that case.
    """
    if not api_key:
        return None, "No API key found in OPEN_AI_API_KEY"
    try:
        from langchain_openai import ChatOpenAI

        llm = ChatOpenAI(
            model=model,
            temperature=0.4,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,  # retries are the caller's decision
        )
    except Exception as e:  # construction errors vary by provider SDK version
        logger.warning("[llm] failed to initialize OpenAI client: %s", e)
        return None, f"Failed to initialize OpenAI client: {e}"
    return llm, ""
