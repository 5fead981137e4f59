"""
Prompt construction for the AI risk analysis.

Diffs are redacted first, then packed into a fixed character budget. When a
diff does not fit it is cut (at a line boundary when one falls in the last
20% of the remaining room) and ends with `TRUNCATION_MARKER`; the marker is
counted inside the budget.
"""

from typing import List, Optional, Sequence, Tuple

from langchain_core.prompts import PromptTemplate

from app.integrations.github.schemas import FileDiff
from app.services.ai.redaction import redact_secrets
from app.services.ai.schemas import AiInput

MAX_DIFF_CHARS = 6000
TRUNCATION_MARKER = "\n... [truncated]"
LINE_BOUNDARY_RATIO = 0.8

SYSTEM_PROMPT = (
    "You are a code review assistant. Analyze PR risk and provide actionable, "
    "grounded insights. Always respond with valid JSON matching the requested schema."
)

RISK_ANALYSIS_PROMPT = PromptTemplate.from_template(
    """You are analyzing a Pull Request for risk assessment. Based on the computed risk score and file changes, provide actionable insights.

## PR Risk Score
- Score: {score}/100
- Level: {level}
- Top Risk Reasons:
{reasons}

## Changed Files
{changed_files}

## Top Risky File Diffs
{diffs}

## Instructions
1. Ground your analysis ONLY in the provided score, reasons, and file diffs above.
2. Do NOT invent file names, code patterns, or facts not present in the input.
3. Focus on actionable, specific recommendations.
4. Keep responses concise and practical.

## Output Format
Provide a JSON object with this exact structure:
{{
  "summary": "1-2 sentences explaining why this PR is risky",
  "review_focus": ["3-5 specific items to review first"],
  "test_suggestions": ["3-6 concrete tests to add or run"],
  "rollback_risk": "LOW|MED|HIGH",
  "confidence": 0.0-1.0,
  "warnings": ["any uncertainty or missing information"]
}}

Respond with ONLY the JSON object, no additional text."""
)


def truncate_patch(patch: str, max_chars: int) -> Optional[str]:
    """
    Fit `patch` into `max_chars` characters, marker included.

    Returns None when there is no room left for any content plus the marker.
    """
    if len(patch) <= max_chars:
        return patch
    room = max_chars - len(TRUNCATION_MARKER)
    if room <= 0:
        return None
    cut = patch[:room]
    last_newline = cut.rfind("\n")
    if last_newline > room * LINE_BOUNDARY_RATIO:
        cut = cut[:last_newline]
    return cut + TRUNCATION_MARKER


def pack_diffs(
    file_diffs: Sequence[FileDiff], max_chars: int = MAX_DIFF_CHARS
) -> Tuple[List[FileDiff], int]:
    """
    Redact and pack diffs into `max_chars`.

    Files without a patch (binary or oversized upstream) are skipped.

    Returns:
        (packed diffs in input order, number of diffs dropped for lack of room)
    """
    packed: List[FileDiff] = []
    used = 0
    dropped = 0
    for diff in file_diffs:
        patch = redact_secrets(diff.patch)
        if not patch:
            continue
        remaining = max_chars - used
        fitted = truncate_patch(patch, remaining) if remaining > 0 else None
        if fitted is None:
            dropped += 1
            continue
        used += len(fitted)
        packed.append(diff.model_copy(update={"patch": fitted}))
    return packed, dropped


def _bullets(items: Sequence[str], indent: str = "") -> str:
    return "\n".join(f"{indent}- {item}" for item in items)


def _render_diffs(diffs: Sequence[FileDiff], dropped: int) -> str:
    if not diffs and not dropped:
        return "(No diff content available - files may be too large or binary)"
    blocks = [
        f"### {d.filename} (+{d.additions}/-{d.deletions})\n```diff\n{d.patch}\n```"
        for d in diffs
    ]
    if dropped:
        blocks.append(f"... [truncated] {dropped} more file diff(s) omitted")
    return "\n\n".join(blocks)


def build_prompt(ai_input: AiInput, max_diff_chars: int = MAX_DIFF_CHARS) -> str:
    """Render the user prompt for `ai_input`."""
    diffs, dropped = pack_diffs(ai_input.file_diffs, max_diff_chars)
    return RISK_ANALYSIS_PROMPT.format(
        score=ai_input.score,
        level=ai_input.level,
        reasons=_bullets(ai_input.reasons, indent="  "),
        changed_files=_bullets(ai_input.changed_files),
        diffs=_render_diffs(diffs, dropped),
    )
