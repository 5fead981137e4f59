"""
LangGraph Runtime Context for the score_pr pipeline.

Defines the context schema for dependency injection into LangGraph nodes.
"""

from dataclasses import dataclass

from app.integrations.github.client import GitHubClient
from app.services.ai.analyst import AiAnalyst
from app.services.pr_scoring.store import PullRequestStore
from app.services.scoring.policy import ScoringPolicy


@dataclass
class Ctx:
    """Runtime context for LangGraph nodes. Built once per job.

    Attributes:
        github: Client scoped to the job's installation.
        store: Persistence for PRs, scores and analyses.
        analyst: AI analyst (only used when AI is enabled).
        policy: Scoring policy.
    """

    github: GitHubClient
    store: PullRequestStore
    analyst: AiAnalyst
    policy: ScoringPolicy
