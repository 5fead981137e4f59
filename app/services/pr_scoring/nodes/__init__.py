"""
Node implementations for the score_pr pipeline.
"""

from app.services.pr_scoring.nodes.analysis import ai_enrichment, compute_risk_score
from app.services.pr_scoring.nodes.persistence import persist_pull_request, persist_score
from app.services.pr_scoring.nodes.pr_io import (
    fetch_pr_details,
    post_pr_comment,
    resolve_repository,
)

__all__ = [
    "resolve_repository",
    "fetch_pr_details",
    "persist_pull_request",
    "compute_risk_score",
    "persist_score",
    "ai_enrichment",
    "post_pr_comment",
]
