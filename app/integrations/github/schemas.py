"""
Typed views over the GitHub REST responses the pipeline consumes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RepositoryInfo(BaseModel):
    github_repo_id: int
    full_name: str
    owner: str
    name: str
    private: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RepositoryInfo":
        return cls(
            github_repo_id=data["id"],
            full_name=data["full_name"],
            owner=data["owner"]["login"],
            name=data["name"],
            private=bool(data.get("private", False)),
        )


class FileDiff(BaseModel):
    """One changed file with its unified diff hunk, when GitHub provides one."""

    filename: str
    patch: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    status: Optional[str] = None

    @property
    def churn(self) -> int:
        return self.additions + self.deletions

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "FileDiff":
        return cls(
            filename=data["filename"],
            patch=data.get("patch"),
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            status=data.get("status"),
        )


class PrDetails(BaseModel):
    """Pull request metadata plus the full list of changed paths."""

    github_pr_id: int
    number: int
    title: str = ""
    author: Optional[str] = None
    state: str = "open"
    head_sha: Optional[str] = None
    base_ref: Optional[str] = None
    head_ref: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    changed_files_list: List[str] = Field(default_factory=list)
    merged_at: Optional[datetime] = None
