"""
Database models package.
"""

from app.db.models.repo import Repo
from app.db.models.pull_request import PullRequest, PullRequestDetail, PullRequestSummary
from app.db.models.pr_score import PrScore, PrScorePublic
from app.db.models.pr_ai_analysis import PrAiAnalysis, PrAiAnalysisPublic

__all__ = [
    "Repo",
    "PullRequest",
    "PullRequestDetail",
    "PullRequestSummary",
    "PrScore",
    "PrScorePublic",
    "PrAiAnalysis",
    "PrAiAnalysisPublic",
]
