"""
PR risk scoring.
"""

from app.services.scoring.policy import ScoringPolicy, get_default_policy, load_policy
from app.services.scoring.rules import (
    ScoringInput,
    ScoringResult,
    compute_score,
    level_for_score,
)

__all__ = [
    "ScoringPolicy",
    "get_default_policy",
    "load_policy",
    "ScoringInput",
    "ScoringResult",
    "compute_score",
    "level_for_score",
]
