"""
AI risk analyst.

Turns an `AiInput` into a validated `AiOutput` through the chat model.
`generate` never raises: every failure is returned as an unsuccessful
`AiAnalysisResult` so the caller can carry on without enrichment.

Per call:
1. Check provider configuration (no model call when misconfigured).
2. Build the prompt from redacted, size-bounded diffs.
3. Call the model under a hard deadline, parse JSON, validate.
4. Retry transient failures with linear backoff. Timeouts and validation
   failures are final.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from app.core.config import Settings
from app.core.llm import build_chat_model
from app.core.logging import get_logger
from app.core.retry import RetryPolicy, linear_backoff
from app.services.ai.errors import (
    AiAnalysisError,
    AiNotConfiguredError,
    AiResponseError,
    AiTimeoutError,
    AiValidationError,
    UnsupportedProviderError,
)
from app.services.ai.prompts import SYSTEM_PROMPT, build_prompt
from app.services.ai.schemas import PROMPT_VERSION, AiAnalysisResult, AiInput, AiOutput
from app.services.ai.validator import validate_ai_output

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("openai",)
RETRY_STEP_SECONDS = 1.0

_FINAL_ERRORS = (
    AiTimeoutError,
    AiValidationError,
    AiNotConfiguredError,
    UnsupportedProviderError,
)


def is_retryable(error: BaseException) -> bool:
    return not isinstance(error, _FINAL_ERRORS)


class AiAnalyst:
    """
    Generates structured PR reviews.

    Args:
        settings: Application settings (provider, model, key, timeout, retries).
        chat_model: Anything with `async ainvoke(messages)` returning a message.
            Built from settings on first use when omitted.
        sleep: Awaitable sleep used between retries.
    """

    def __init__(
        self,
        settings: Settings,
        chat_model: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._settings = settings
        self._chat_model = chat_model
        self._retry = RetryPolicy(
            max_attempts=settings.AI_MAX_RETRIES + 1,
            backoff=linear_backoff(RETRY_STEP_SECONDS),
            retryable=is_retryable,
            sleep=sleep,
            name="AI analysis",
        )

    @property
    def model_name(self) -> Optional[str]:
        return self._settings.AI_MODEL

    def check_configuration(self) -> None:
        provider = (self._settings.AI_PROVIDER or "").lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise UnsupportedProviderError(
                f"Unsupported AI provider: {self._settings.AI_PROVIDER}"
            )
        if not self._settings.OPENAI_API_KEY or not self._settings.AI_MODEL:
            raise AiNotConfiguredError("OPENAI_API_KEY and AI_MODEL must be set")

    def _get_chat_model(self) -> Any:
        if self._chat_model is None:
            self._chat_model = build_chat_model(self._settings)
        return self._chat_model

    async def _complete(self, messages: List[BaseMessage]) -> AiOutput:
        timeout = self._settings.AI_TIMEOUT_SECONDS
        try:
            message = await asyncio.wait_for(
                self._get_chat_model().ainvoke(messages), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            raise AiTimeoutError(f"AI request timed out after {timeout}s") from exc

        content = getattr(message, "content", None)
        if not content or not isinstance(content, str):
            raise AiResponseError("Empty response from AI")
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise AiResponseError(f"AI response is not valid JSON: {exc}") from exc
        return validate_ai_output(parsed)

    async def generate(self, ai_input: AiInput) -> AiAnalysisResult:
        """
        Produce a validated analysis for `ai_input`.

        Returns:
            AiAnalysisResult with `success=True` and `output` set, or
            `success=False` with `error` and `error_code`.
        """
        attempts = 0

        async def _attempt() -> AiOutput:
            nonlocal attempts
            attempts += 1
            return await self._complete(messages)

        try:
            self.check_configuration()
            messages: List[BaseMessage] = [
                SystemMessage(content=SYSTEM_PROMPT),
                HumanMessage(
                    content=build_prompt(ai_input, self._settings.AI_MAX_DIFF_CHARS)
                ),
            ]
            output = await self._retry.run(_attempt)
        except AiAnalysisError as exc:
            logger.warning("AI analysis failed [%s]: %s", exc.code, exc)
            return self._failure(str(exc), exc.code, attempts)
        except Exception as exc:
            logger.error("AI analysis failed: %s", exc, exc_info=True)
            return self._failure(str(exc), AiAnalysisError.code, attempts)

        logger.info("AI analysis succeeded after %d attempt(s)", attempts)
        return AiAnalysisResult(
            success=True,
            output=output,
            model=self.model_name,
            prompt_version=PROMPT_VERSION,
            attempts=attempts,
        )

    def _failure(self, error: str, code: str, attempts: int) -> AiAnalysisResult:
        return AiAnalysisResult(
            success=False,
            error=error,
            error_code=code,
            model=self.model_name,
            prompt_version=PROMPT_VERSION,
            attempts=attempts,
        )
