"""
AI analysis errors.

Each error carries a stable `code` that is logged and stored with failed
analyses.
"""


class AiAnalysisError(Exception):
    code = "AI_ERROR"


class AiNotConfiguredError(AiAnalysisError):
    """Provider credentials or model name missing."""

    code = "AI_NOT_CONFIGURED"


class UnsupportedProviderError(AiAnalysisError):
    code = "AI_UNSUPPORTED_PROVIDER"


class AiTimeoutError(AiAnalysisError):
    code = "AI_TIMEOUT"


class AiResponseError(AiAnalysisError):
    """Empty or non-JSON model response."""

    code = "AI_BAD_RESPONSE"


class AiValidationError(AiAnalysisError):
    """Response parsed but failed schema or secret checks."""

    code = "AI_VALIDATION_FAILED"
