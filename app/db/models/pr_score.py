"""
PR Score Model

Append-only history of deterministic scores; the newest row per PR is the
current one.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.db.models.pull_request import PullRequest


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------
class PrScoreBase(SQLModel):
    """Shared fields for PrScore."""

    score: int = Field(ge=0, le=100, description="Risk score, 0-100.")
    level: str = Field(description="LOW, MED or HIGH.")
    reasons: List[str] = Field(
        default_factory=list, description="Top reasons, most severe first."
    )
    features: Dict[str, Any] = Field(
        default_factory=dict, description="Feature snapshot used to compute the score."
    )


# -----------------------------------------------------------------------------
# ORM Model (Database layer)
# -----------------------------------------------------------------------------
class PrScore(PrScoreBase, table=True):
    """
    ORM Model for one computed score.
    """

    __tablename__ = "pr_score"

    # Override JSON fields to use JSONB column type
    reasons: list = Field(default_factory=list, sa_column=Column(JSONB, nullable=False))
    features: dict = Field(default_factory=dict, sa_column=Column(JSONB, nullable=False))

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

    pull_request: Optional["PullRequest"] = Relationship(back_populates="scores")

    def to_public(self) -> "PrScorePublic":
        """Convert to render-safe public DTO."""
        return PrScorePublic(
            id=self.id,
            score=self.score,
            level=self.level,
            reasons=self.reasons,
            features=self.features,
            created_at=self.created_at,
        )


# -----------------------------------------------------------------------------
# Public (Response/Read layer)
# -----------------------------------------------------------------------------
class PrScorePublic(PrScoreBase):
    id: uuid.UUID
    created_at: datetime
