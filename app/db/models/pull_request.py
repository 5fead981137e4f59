"""
Pull Request Model

Latest known metadata for a PR.
Key: github_pr_id (unique). Re-deliveries for the same PR overwrite it
(last write wins); scores and analyses accumulate as history.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import BigInteger, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, Relationship, SQLModel

from app.db.models.pr_ai_analysis import PrAiAnalysisPublic
from app.db.models.pr_score import PrScorePublic

if TYPE_CHECKING:
    from app.db.models.pr_ai_analysis import PrAiAnalysis
    from app.db.models.pr_score import PrScore
    from app.db.models.repo import Repo


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------
class PullRequestBase(SQLModel):
    """Shared fields for PullRequest."""

    github_pr_id: int = Field(description="GitHub numeric pull request id.")
    number: int = Field(description="Pull request number within the repository.")
    title: str = ""
    state: str = "open"
    author: Optional[str] = None
    head_sha: Optional[str] = None
    base_ref: Optional[str] = None
    head_ref: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    changed_files_list: List[str] = Field(default_factory=list)
    merged_at: Optional[datetime] = None


# -----------------------------------------------------------------------------
# ORM Model (Database layer)
# -----------------------------------------------------------------------------
class PullRequest(PullRequestBase, table=True):
    """
    Pull request table.
    """

    __tablename__ = "pull_request"

    github_pr_id: int = Field(
        sa_column=Column(BigInteger, unique=True, index=True, nullable=False)
    )
    changed_files_list: list = Field(
        default_factory=list, sa_column=Column(JSONB, nullable=False)
    )
    merged_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )
    repo_id: uuid.UUID = Field(foreign_key="repo.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    # Relationships
    repo: Optional["Repo"] = Relationship(back_populates="pull_requests")
    scores: List["PrScore"] = Relationship(back_populates="pull_request")
    ai_analyses: List["PrAiAnalysis"] = Relationship(back_populates="pull_request")

    @property
    def latest_score(self) -> Optional["PrScore"]:
        return max(self.scores or [], key=lambda s: s.created_at, default=None)

    @property
    def latest_ai_analysis(self) -> Optional["PrAiAnalysis"]:
        return max(self.ai_analyses or [], key=lambda a: a.created_at, default=None)

    def to_summary(self) -> "PullRequestSummary":
        """Convert to the list-view DTO. Requires repo and scores loaded."""
        latest = self.latest_score
        return PullRequestSummary(
            id=self.id,
            repository=self.repo.full_name if self.repo else None,
            latest_score=latest.to_public() if latest else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
            **self.model_dump(include=set(PullRequestBase.model_fields)),
        )

    def to_detail(self) -> "PullRequestDetail":
        """Convert to the detail DTO. Requires all relationships loaded."""
        latest_analysis = self.latest_ai_analysis
        return PullRequestDetail(
            **self.to_summary().model_dump(),
            scores=[
                s.to_public()
                for s in sorted(self.scores or [], key=lambda s: s.created_at, reverse=True)
            ],
            ai_analysis=latest_analysis.to_public() if latest_analysis else None,
        )


# -----------------------------------------------------------------------------
# Public (Response/Read layer)
# -----------------------------------------------------------------------------
class PullRequestSummary(PullRequestBase):
    """
    Public DTO for PR list responses.
    """

    id: uuid.UUID
    repository: Optional[str] = None
    latest_score: Optional[PrScorePublic] = None
    created_at: datetime
    updated_at: datetime


class PullRequestDetail(PullRequestSummary):
    """
    Public DTO for a single PR with its score history and latest analysis.
    """

    scores: List[PrScorePublic] = []
    ai_analysis: Optional[PrAiAnalysisPublic] = None
