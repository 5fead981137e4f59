"""
AI enrichment: file selection, redaction, prompt building, model call and
output validation.
"""

from app.services.ai.analyst import AiAnalyst
from app.services.ai.file_selector import Churn, select_risky_files
from app.services.ai.redaction import redact_secrets
from app.services.ai.schemas import AiAnalysisResult, AiInput, AiOutput

__all__ = [
    "AiAnalyst",
    "AiAnalysisResult",
    "AiInput",
    "AiOutput",
    "Churn",
    "redact_secrets",
    "select_risky_files",
]
