"""
Choose which changed files get their diffs sent to the model.
"""

from typing import List, Mapping, NamedTuple, Optional, Sequence

from app.services.ai.schemas import FileRiskScore
from app.services.scoring.policy import ScoringPolicy, get_default_policy

CRITICAL_PATH_WEIGHT = 200
DEFAULT_LIMIT = 3


class Churn(NamedTuple):
    additions: int = 0
    deletions: int = 0


def select_risky_files(
    changed_files: Sequence[str],
    file_churn: Mapping[str, Churn],
    limit: int = DEFAULT_LIMIT,
    policy: Optional[ScoringPolicy] = None,
) -> List[FileRiskScore]:
    """
    Rank files by `CRITICAL_PATH_WEIGHT` (critical paths only) plus churn.

    Files missing from `file_churn` count as zero churn. Ties keep the
    order of `changed_files`.

    Returns:
        At most `limit` files, riskiest first.
    """
    policy = policy or get_default_policy()
    scored: List[FileRiskScore] = []
    for filename in changed_files:
        churn = file_churn.get(filename, Churn())
        total = churn.additions + churn.deletions
        is_critical = policy.is_critical(filename)
        scored.append(
            FileRiskScore(
                filename=filename,
                risk_score=(CRITICAL_PATH_WEIGHT if is_critical else 0) + total,
                is_critical=is_critical,
                churn=total,
            )
        )

    # reverse=True keeps equal keys in input order
    scored.sort(key=lambda f: f.risk_score, reverse=True)
    return scored[:limit]
