from __future__ import annotations

from app.integrations.github.schemas import FileDiff
from app.services.ai.prompts import (
    TRUNCATION_MARKER,
    build_prompt,
    pack_diffs,
    truncate_patch,
)
from app.services.ai.schemas import AiInput


def _patch(lines: int, width: int = 40) -> str:
    return "\n".join(f"+{'x' * (width - 1)}" for _ in range(lines))


def test_short_patch_is_untouched() -> None:
    assert truncate_patch("+a\n+b", 100) == "+a\n+b"


def test_truncated_patch_fits_budget_and_ends_with_marker() -> None:
    patch = _patch(100)
    result = truncate_patch(patch, 1000)
    assert len(result) <= 1000
    assert result.endswith(TRUNCATION_MARKER)


def test_truncation_prefers_line_boundary() -> None:
    patch = _patch(100)
    result = truncate_patch(patch, 1000)
    body = result[: -len(TRUNCATION_MARKER)]
    assert not body.endswith("\n")
    assert all(line == "+" + "x" * 39 for line in body.split("\n"))


def test_pack_respects_total_budget() -> None:
    diffs = [FileDiff(filename=f"f{i}.py", patch=_patch(60), additions=60) for i in range(5)]
    packed, dropped = pack_diffs(diffs, max_chars=3000)
    total = sum(len(d.patch) for d in packed)
    assert total <= 3000
    assert packed[-1].patch.endswith(TRUNCATION_MARKER)
    assert dropped == 5 - len(packed)


def test_pack_skips_missing_patches() -> None:
    diffs = [FileDiff(filename="logo.png"), FileDiff(filename="a.py", patch="+print('hi')")]
    packed, dropped = pack_diffs(diffs)
    assert [d.filename for d in packed] == ["a.py"]
    assert dropped == 0


def test_pack_redacts_before_measuring() -> None:
    diffs = [FileDiff(filename="settings.py", patch='+API_KEY = "abcdefghijklmnopqrstuvwxyz0123"')]
    packed, _ = pack_diffs(diffs)
    assert "abcdefghijklmnopqrstuvwxyz0123" not in packed[0].patch
    assert "[REDACTED]" in packed[0].patch


def test_build_prompt_contains_inputs() -> None:
    ai_input = AiInput(
        score=60,
        level="MED",
        reasons=["Touches critical path: Authentication", "No test files changed"],
        changed_files=["src/auth/login.ts", "src/app.ts"],
        file_diffs=[FileDiff(filename="src/auth/login.ts", patch="+const x = {a: 1};", additions=1)],
    )
    prompt = build_prompt(ai_input)
    assert "- Score: 60/100" in prompt
    assert "- Level: MED" in prompt
    assert "  - Touches critical path: Authentication" in prompt
    assert "- src/app.ts" in prompt
    assert "### src/auth/login.ts (+1/-0)" in prompt
    assert "+const x = {a: 1};" in prompt
    assert '"rollback_risk": "LOW|MED|HIGH"' in prompt


def test_build_prompt_without_diffs() -> None:
    prompt = build_prompt(AiInput(score=0, level="LOW", reasons=[], changed_files=["a.bin"]))
    assert "(No diff content available" in prompt
