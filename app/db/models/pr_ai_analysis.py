"""
PR AI Analysis Model

Validated AI output stored verbatim, with the model and prompt version that
produced it.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.db.models.pull_request import PullRequest


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------
class PrAiAnalysisBase(SQLModel):
    """Shared fields for PrAiAnalysis."""

    analysis_json: Dict[str, Any] = Field(
        default_factory=dict, description="Validated AI output."
    )
    model: str = Field(description="Model name used for the analysis.")
    prompt_version: str = Field(default="v1")


# -----------------------------------------------------------------------------
# ORM Model (Database layer)
# -----------------------------------------------------------------------------
class PrAiAnalysis(PrAiAnalysisBase, table=True):
    """
    ORM Model for one AI analysis.
    """

    __tablename__ = "pr_ai_analysis"

    analysis_json: dict = Field(default_factory=dict, sa_column=Column(JSONB, nullable=False))

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )
    pull_request_id: uuid.UUID = Field(foreign_key="pull_request.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    pull_request: Optional["PullRequest"] = Relationship(back_populates="ai_analyses")

    def to_public(self) -> "PrAiAnalysisPublic":
        return PrAiAnalysisPublic(
            id=self.id,
            analysis_json=self.analysis_json,
            model=self.model,
            prompt_version=self.prompt_version,
            created_at=self.created_at,
        )


# -----------------------------------------------------------------------------
# Public (Response/Read layer)
# -----------------------------------------------------------------------------
class PrAiAnalysisPublic(PrAiAnalysisBase):
    id: uuid.UUID
    created_at: datetime
