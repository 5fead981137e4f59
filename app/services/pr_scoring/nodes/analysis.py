"""Scoring and AI enrichment nodes for the score_pr pipeline."""

from langgraph.runtime import Runtime

from app.core.logging import get_logger
from app.services.ai.file_selector import Churn, select_risky_files
from app.services.ai.schemas import AiInput
from app.services.pr_scoring.context import Ctx
from app.services.pr_scoring.state import ScorePrState
from app.services.scoring.rules import ScoringInput, compute_score

logger = get_logger(__name__)

# No CI lookup yet: every PR is scored as if CI status were unknown
DEFAULT_CI_STATUS = "unknown"


def compute_risk_score(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """Run the deterministic scoring engine on the fetched PR."""
    details = state.pr_details
    result = compute_score(
        ScoringInput(
            changed_files=details.changed_files,
            additions=details.additions,
            deletions=details.deletions,
            changed_files_list=details.changed_files_list,
            ci_status=DEFAULT_CI_STATUS,
        ),
        runtime.context.policy,
    )
    logger.info(
        "Scored %s: %d (%s) %s",
        state.job.display_name,
        result.score,
        result.level,
        "; ".join(result.reasons),
    )
    return {"score": result}


async def ai_enrichment(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """
    Select the riskiest files, run the AI analyst on their diffs and store
    the analysis.

    Never fails the job: any problem is logged and recorded as a warning.
    """
    ctx = runtime.context
    job = state.job
    try:
        diffs = await ctx.github.fetch_pr_file_diffs(job.owner, job.name, job.pr_number)
        churn = {d.filename: Churn(d.additions, d.deletions) for d in diffs}
        selected = select_risky_files(
            state.pr_details.changed_files_list, churn, policy=ctx.policy
        )
        by_name = {d.filename: d for d in diffs}
        ai_input = AiInput(
            score=state.score.score,
            level=state.score.level,
            reasons=state.score.reasons,
            changed_files=state.pr_details.changed_files_list,
            file_diffs=[by_name[f.filename] for f in selected if f.filename in by_name],
        )

        result = await ctx.analyst.generate(ai_input)
        if not result.success:
            logger.warning(
                "AI analysis unavailable for %s [%s]: %s",
                job.display_name,
                result.error_code,
                result.error,
            )
            return {"warnings": [f"ai: {result.error_code}: {result.error}"]}

        analysis_id = await ctx.store.insert_analysis(
            state.pull_request_id, result.output, result.model, result.prompt_version
        )
    except Exception as e:
        logger.error("AI enrichment for %s failed: %s", job.display_name, e, exc_info=True)
        return {"warnings": [f"ai: {e}"]}

    return {"ai_output": result.output, "analysis_id": analysis_id}
