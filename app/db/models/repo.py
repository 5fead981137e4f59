"""
Repository Model

One row per GitHub repository the App has seen.
Key: github_repo_id (unique)
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.db.models.pull_request import PullRequest


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------
class RepoBase(SQLModel):
    """Shared fields for Repo."""

    github_repo_id: int = Field(description="GitHub numeric repository id.")
    full_name: str = Field(description="owner/name")
    owner: str
    name: str
    installation_id: Optional[int] = Field(
        default=None, description="GitHub App installation that delivered the event."
    )
    private: bool = False


# -----------------------------------------------------------------------------
# ORM Model (Database layer)
# -----------------------------------------------------------------------------
class Repo(RepoBase, table=True):
    """
    Repository table.
    """

    __tablename__ = "repo"

    # GitHub ids exceed 32 bits
    github_repo_id: int = Field(
        sa_column=Column(BigInteger, unique=True, index=True, nullable=False)
    )
    installation_id: Optional[int] = Field(
        default=None, sa_column=Column(BigInteger, nullable=True)
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    pull_requests: List["PullRequest"] = Relationship(back_populates="repo")
