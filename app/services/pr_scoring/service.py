"""
score_pr job execution.

`ScorePrService` owns the long-lived dependencies of a worker process and
runs one queued job through the pipeline graph with a per-job context.
"""

import time
from typing import Any, Dict, Optional

from app.core.config import Settings
from app.core.job_queue import QueuedJob
from app.core.logging import get_job_logger
from app.integrations.github.client import GitHubClientFactory
from app.services.ai.analyst import AiAnalyst
from app.services.pr_scoring.context import Ctx
from app.services.pr_scoring.graph import score_pr_graph
from app.services.pr_scoring.store import PullRequestStore
from app.services.scoring.policy import ScoringPolicy, get_default_policy


class MissingInstallationError(ValueError):
    """Job has no GitHub App installation id to authenticate with."""


class ScorePrService:
    def __init__(
        self,
        settings: Settings,
        github: GitHubClientFactory,
        store: PullRequestStore,
        analyst: AiAnalyst,
        policy: Optional[ScoringPolicy] = None,
    ):
        self._settings = settings
        self._github = github
        self._store = store
        self._analyst = analyst
        self._policy = policy or get_default_policy()

    async def run(self, queued: QueuedJob) -> Dict[str, Any]:
        """
        Run the pipeline for one job.

        Returns:
            Summary of the final state (ids, score, level, warnings).

        Raises:
            MissingInstallationError: The job carries no installation id.
            Exception: Any error from a fatal pipeline stage, unchanged.
        """
        job = queued.job
        log = get_job_logger(
            __name__, job=queued.job_id, pr=job.display_name, attempt=queued.attempts_made + 1
        )
        if job.installation_id is None:
            raise MissingInstallationError(
                f"No installation id for {job.display_name}; cannot authenticate to GitHub"
            )

        started = time.monotonic()
        log.info("Processing job")
        result = await score_pr_graph.ainvoke(
            {
                "job_id": queued.job_id,
                "job": job,
                "ai_enabled": self._settings.AI_ENABLED,
                "post_comments": self._settings.GITHUB_POST_COMMENTS,
            },
            context=Ctx(
                github=self._github.for_installation(job.installation_id),
                store=self._store,
                analyst=self._analyst,
                policy=self._policy,
            ),
        )

        score = result["score"]
        summary = {
            "job_id": queued.job_id,
            "pull_request_id": result["pull_request_id"],
            "score": score.score,
            "level": score.level,
            "analysis_id": result.get("analysis_id"),
            "comment_id": result.get("comment_id"),
            "warnings": result.get("warnings", []),
        }
        log.info(
            "Job completed in %.2fs: score=%d level=%s warnings=%d",
            time.monotonic() - started,
            score.score,
            score.level,
            len(summary["warnings"]),
        )
        return summary
