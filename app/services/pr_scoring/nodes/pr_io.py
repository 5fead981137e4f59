"""GitHub I/O nodes for the score_pr pipeline."""

from langgraph.runtime import Runtime

from app.core.logging import get_logger
from app.services.github.comments import post_ai_comment
from app.services.pr_scoring.context import Ctx
from app.services.pr_scoring.state import ScorePrState

logger = get_logger(__name__)


async def resolve_repository(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """Look up the repository's numeric id and visibility. Fatal on error."""
    job = state.job
    repository = await runtime.context.github.get_repository(job.owner, job.name)
    return {"repository": repository}


async def fetch_pr_details(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """Fetch PR metadata and the full changed-file list. Fatal on error."""
    job = state.job
    details = await runtime.context.github.fetch_pr_details(job.owner, job.name, job.pr_number)
    logger.info(
        "Fetched %s: %d files, +%d/-%d",
        job.display_name,
        details.changed_files,
        details.additions,
        details.deletions,
    )
    return {"pr_details": details}


async def post_pr_comment(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """Post the AI analysis as a PR comment. Failures are recorded, not raised."""
    if state.ai_output is None:
        return {}
    job = state.job
    try:
        comment_id = await post_ai_comment(
            runtime.context.github, job.owner, job.name, job.pr_number, state.ai_output
        )
    except Exception as e:
        logger.error("Posting PR comment for %s failed: %s", job.display_name, e, exc_info=True)
        return {"warnings": [f"comment: {e}"]}
    return {"comment_id": comment_id}
