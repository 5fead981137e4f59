"""
Graph state for the score_pr pipeline.

Pure graph state: no service-layer imports beyond the data contracts.
"""

import operator
import uuid
from typing import Annotated, List, Optional

from sqlmodel import Field, SQLModel

from app.core.job_queue import ScorePrJob
from app.integrations.github.schemas import PrDetails, RepositoryInfo
from app.services.ai.schemas import AiOutput
from app.services.scoring.rules import ScoringResult


class ScorePrState(SQLModel):
    """
    State of one score_pr job run.

    This is used by LangGraph to manage workflow state, not a database table.
    """

    job_id: str = Field(description="Deterministic queue job identity.")
    job: ScorePrJob
    ai_enabled: bool = Field(default=False, description="Run the AI enrichment stage.")
    post_comments: bool = Field(default=False, description="Post the AI analysis on the PR.")

    repository: Optional[RepositoryInfo] = None
    pr_details: Optional[PrDetails] = None
    pull_request_id: Optional[uuid.UUID] = Field(
        default=None, description="Internal id of the upserted PR row."
    )
    score: Optional[ScoringResult] = None
    score_id: Optional[uuid.UUID] = None
    ai_output: Optional[AiOutput] = None
    analysis_id: Optional[uuid.UUID] = None
    comment_id: Optional[int] = None
    warnings: Annotated[List[str], operator.add] = Field(
        default_factory=list, description="Non-fatal stage failures."
    )
