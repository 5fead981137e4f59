"""
LLM Client Initialization.

Builds the chat model used by the AI analyst from settings. Kept apart from
config.py so configuration parsing does not import provider SDKs.

Retries and the overall deadline are owned by the caller, so the client is
built with `max_retries=0` and an HTTP timeout that outlasts the caller's
`asyncio` deadline.
"""

from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from app.core.config import Settings

TEMPERATURE = 0.3
MAX_COMPLETION_TOKENS = 1000
# Seconds the SDK timeout exceeds AI_TIMEOUT_SECONDS
SDK_TIMEOUT_MARGIN = 5.0


def build_chat_model(settings: Settings) -> Runnable:
    """
    Create the chat model, bound to JSON-object responses.

    Args:
        settings: Application settings. OPENAI_API_KEY and AI_MODEL must be set.

    Returns:
        A runnable accepting a list of messages.
    """
    llm = ChatOpenAI(
        api_key=SecretStr(settings.OPENAI_API_KEY or ""),
        model=settings.AI_MODEL,
        temperature=TEMPERATURE,
        max_completion_tokens=MAX_COMPLETION_TOKENS,
        timeout=settings.AI_TIMEOUT_SECONDS + SDK_TIMEOUT_MARGIN,
        max_retries=0,
    )
    return llm.bind(response_format={"type": "json_object"})
