"""
PR comment rendering and posting for AI analyses.
"""

from app.core.logging import get_logger
from app.integrations.github.client import GitHubClient
from app.services.ai.schemas import AiOutput

logger = get_logger(__name__)

COMMENT_ITEMS = 3


def _bullets(items) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_ai_comment(output: AiOutput) -> str:
    """Render an AI analysis as a GitHub markdown comment."""
    sections = [
        "## 🤖 AI Risk Analysis",
        f"**Summary:** {output.summary}",
        "### 🔍 Review Focus\n" + _bullets(output.review_focus[:COMMENT_ITEMS]),
        "### 🧪 Test Suggestions\n" + _bullets(output.test_suggestions[:COMMENT_ITEMS]),
        f"**Rollback Risk:** {output.rollback_risk}  \n"
        f"**Confidence:** {output.confidence * 100:.0f}%",
    ]
    if output.warnings:
        sections.append("**⚠️ Warnings:**\n" + _bullets(output.warnings))
    return "\n\n".join(sections) + "\n"


async def post_ai_comment(
    client: GitHubClient, owner: str, repo: str, pr_number: int, output: AiOutput
) -> int:
    """Post the analysis on the PR. Errors propagate to the caller."""
    comment_id = await client.create_issue_comment(
        owner, repo, pr_number, format_ai_comment(output)
    )
    logger.info("Posted AI analysis comment %s on %s/%s#%s", comment_id, owner, repo, pr_number)
    return comment_id
