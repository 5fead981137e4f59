"""
Persistence nodes for the score_pr pipeline.
"""

from langgraph.runtime import Runtime

from app.services.pr_scoring.context import Ctx
from app.services.pr_scoring.state import ScorePrState


async def persist_pull_request(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    """Upsert repository and PR in one transaction."""
    pr_id = await runtime.context.store.upsert_pull_request(
        state.repository, state.job.installation_id, state.pr_details
    )
    return {"pull_request_id": pr_id}


async def persist_score(state: ScorePrState, runtime: Runtime[Ctx]) -> dict:
    score_id = await runtime.context.store.insert_score(state.pull_request_id, state.score)
    return {"score_id": score_id}
