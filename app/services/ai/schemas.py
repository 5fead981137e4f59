"""
Input and output contracts of the AI analysis stage.

`AiOutput` is the only shape accepted from the model. Unknown keys are
dropped; everything else is validated strictly and a failure rejects the
whole response.
"""

from dataclasses import dataclass
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from app.integrations.github.schemas import FileDiff
from app.services.scoring.rules import RiskLevel

PROMPT_VERSION = "v1"

RollbackRisk = RiskLevel

SummaryText = Annotated[StrictStr, Field(min_length=10, max_length=500)]
ListItem = Annotated[StrictStr, Field(min_length=5, max_length=200)]


class AiInput(BaseModel):
    """Everything the prompt is built from."""

    score: int
    level: RiskLevel
    reasons: List[str]
    changed_files: List[str]
    file_diffs: List[FileDiff] = Field(default_factory=list)


class AiOutput(BaseModel):
    """Structured review produced by the model."""

    model_config = ConfigDict(extra="ignore")

    summary: SummaryText
    review_focus: List[ListItem] = Field(min_length=3, max_length=5)
    test_suggestions: List[ListItem] = Field(min_length=3, max_length=6)
    rollback_risk: RollbackRisk
    confidence: float = Field(ge=0.0, le=1.0, strict=True)
    warnings: Optional[List[StrictStr]] = None


class FileRiskScore(BaseModel):
    filename: str
    risk_score: int
    is_critical: bool
    churn: int


@dataclass
class AiAnalysisResult:
    """Outcome of one `AiAnalyst.generate` call. Never raised, always returned."""

    success: bool
    output: Optional[AiOutput] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    model: Optional[str] = None
    prompt_version: str = PROMPT_VERSION
    attempts: int = 0
