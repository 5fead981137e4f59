from __future__ import annotations

from app.services.ai.schemas import AiOutput
from app.services.github.comments import format_ai_comment


def make_output(**overrides) -> AiOutput:
    data = {
        "summary": "Refactors session storage and touches billing.",
        "review_focus": ["Session cookie flags", "Billing rounding", "Migration order", "Logging noise"],
        "test_suggestions": ["Session expiry", "Refund rounding", "Migration rollback"],
        "rollback_risk": "HIGH",
        "confidence": 0.85,
    }
    data.update(overrides)
    return AiOutput(**data)


def test_comment_layout() -> None:
    body = format_ai_comment(make_output())

    assert body.startswith("## 🤖 AI Risk Analysis\n\n**Summary:** Refactors session storage")
    assert "### 🔍 Review Focus\n- Session cookie flags\n- Billing rounding\n- Migration order" in body
    assert "Logging noise" not in body
    assert "### 🧪 Test Suggestions\n- Session expiry" in body
    assert "**Rollback Risk:** HIGH  \n**Confidence:** 85%" in body
    assert "Warnings" not in body
    assert body.endswith("\n")


def test_comment_includes_warnings() -> None:
    body = format_ai_comment(make_output(warnings=["Diff truncated for 2 files"]))
    assert body.endswith("**⚠️ Warnings:**\n- Diff truncated for 2 files\n")
