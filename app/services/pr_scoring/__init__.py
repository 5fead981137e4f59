"""
score_pr pipeline: fetch, score, persist and optionally enrich a PR.
"""

from app.services.pr_scoring.service import MissingInstallationError, ScorePrService
from app.services.pr_scoring.store import PullRequestStore

__all__ = ["MissingInstallationError", "ScorePrService", "PullRequestStore"]
