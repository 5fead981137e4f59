"""
score_pr pipeline graph.

Builds the LangGraph StateGraph run by the worker for every job:

    resolve_repository -> fetch_pr_details -> persist_pull_request
        -> compute_risk_score -> persist_score
        -> [ai_enrichment] -> [post_pr_comment]

Every node up to persist_score is fatal: its exception propagates out of
`ainvoke` and the queue retries the job. The optional tail never raises.
"""

from langgraph.graph import END, START, StateGraph

from app.services.pr_scoring.context import Ctx
from app.services.pr_scoring.nodes import (
    ai_enrichment,
    compute_risk_score,
    fetch_pr_details,
    persist_pull_request,
    persist_score,
    post_pr_comment,
    resolve_repository,
)
from app.services.pr_scoring.state import ScorePrState


def route_after_score(state: ScorePrState) -> str:
    return "ai_enrichment" if state.ai_enabled else END


def route_after_analysis(state: ScorePrState) -> str:
    if state.post_comments and state.ai_output is not None:
        return "post_pr_comment"
    return END


# 1. Initialize Graph with context schema
workflow = StateGraph(ScorePrState, context_schema=Ctx)

# 2. Add Nodes
workflow.add_node("resolve_repository", resolve_repository)
workflow.add_node("fetch_pr_details", fetch_pr_details)
workflow.add_node("persist_pull_request", persist_pull_request)
workflow.add_node("compute_risk_score", compute_risk_score)
workflow.add_node("persist_score", persist_score)
workflow.add_node("ai_enrichment", ai_enrichment)
workflow.add_node("post_pr_comment", post_pr_comment)

# 3. Add Edges
workflow.add_edge(START, "resolve_repository")
workflow.add_edge("resolve_repository", "fetch_pr_details")
workflow.add_edge("fetch_pr_details", "persist_pull_request")
workflow.add_edge("persist_pull_request", "compute_risk_score")
workflow.add_edge("compute_risk_score", "persist_score")
workflow.add_conditional_edges("persist_score", route_after_score, ["ai_enrichment", END])
workflow.add_conditional_edges("ai_enrichment", route_after_analysis, ["post_pr_comment", END])
workflow.add_edge("post_pr_comment", END)

# 4. Compile
score_pr_graph = workflow.compile()
