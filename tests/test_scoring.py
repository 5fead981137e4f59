from __future__ import annotations

import pytest

from app.services.scoring import ScoringInput, compute_score, get_default_policy, level_for_score


def _files(n: int, prefix: str = "src/feature/file") -> list[str]:
    return [f"{prefix}{i}.ts" for i in range(n)]


def test_small_pr_scores_low() -> None:
    result = compute_score(
        ScoringInput(
            changed_files=3,
            additions=50,
            deletions=20,
            changed_files_list=["src/utils/helper.ts", "src/index.ts", "README.md"],
        )
    )
    assert result.score <= 30
    assert result.level == "LOW"
    assert result.reasons == ["No test files changed"]
    assert result.features.lines_changed == 70
    assert result.features.touches_critical_paths is False


def test_huge_pr_touching_auth_and_payments_caps_at_100() -> None:
    files = ["src/auth/login.ts", "src/payments/charge.ts"] + _files(53)
    result = compute_score(
        ScoringInput(changed_files=55, additions=900, deletions=300, changed_files_list=files)
    )
    assert result.score == 100
    assert result.level == "HIGH"
    assert len(result.reasons) == 3
    assert result.reasons[0].startswith("Large PR: 55 files")
    assert result.reasons[1].startswith("Large PR: 1200 lines")
    assert result.reasons[2] == "Touches multiple critical paths: Authentication, Payments"
    assert result.features.critical_paths_touched == ["Authentication", "Payments"]


def test_single_critical_path_is_med_penalty() -> None:
    result = compute_score(
        ScoringInput(
            changed_files=2,
            additions=10,
            deletions=5,
            changed_files_list=["src/auth/login.ts", "tests/auth/login.test.ts"],
        )
    )
    assert result.score == 20
    assert result.level == "LOW"
    assert result.reasons == ["Touches critical path: Authentication"]
    assert result.features.has_test_changes is True


def test_size_thresholds_are_strictly_greater_than() -> None:
    at_med = compute_score(
        ScoringInput(changed_files=20, additions=500, deletions=0, changed_files_list=["a_test.py"])
    )
    assert at_med.score == 0

    above_med = compute_score(
        ScoringInput(changed_files=21, additions=501, deletions=0, changed_files_list=["a_test.py"])
    )
    assert above_med.score == 40
    assert above_med.reasons == [
        "Medium PR: 21 files changed (threshold: 20)",
        "Medium PR: 501 lines changed (threshold: 500)",
    ]


def test_high_reasons_rank_before_med_and_keep_rule_order() -> None:
    result = compute_score(
        ScoringInput(
            changed_files=30,
            additions=2000,
            deletions=0,
            changed_files_list=["src/config/app.yaml"],
            ci_status="failure",
        )
    )
    # files MED, lines HIGH, critical MED, no tests MED, CI MED
    assert result.score == 100
    assert result.reasons[0].startswith("Large PR: 2000 lines")
    assert result.reasons[1].startswith("Medium PR: 30 files")
    assert result.reasons[2] == "Touches critical path: Configuration"


@pytest.mark.parametrize("status, flagged", [("failure", True), ("unknown", True), ("success", False), ("pending", False), (None, False)])
def test_ci_status_rule(status: str | None, flagged: bool) -> None:
    result = compute_score(
        ScoringInput(changed_files=1, additions=1, deletions=0, changed_files_list=["x.spec.ts"], ci_status=status)
    )
    assert (f"CI status: {status}" in result.reasons) is flagged


def test_empty_pr_has_no_reasons() -> None:
    result = compute_score(ScoringInput(changed_files=0, additions=0, deletions=0))
    assert result.score == 0
    assert result.level == "LOW"
    assert result.reasons == []


def test_scoring_is_deterministic() -> None:
    scoring_input = ScoringInput(
        changed_files=25, additions=700, deletions=10, changed_files_list=["infra/deploy.sh", "db/migrations/001.sql"]
    )
    assert compute_score(scoring_input) == compute_score(scoring_input)


@pytest.mark.parametrize(
    "score, level",
    [(-5, "LOW"), (0, "LOW"), (30, "LOW"), (31, "MED"), (70, "MED"), (71, "HIGH"), (100, "HIGH"), (250, "HIGH")],
)
def test_level_for_score_bands(score: int, level: str) -> None:
    assert level_for_score(score) == level


def test_policy_path_classes() -> None:
    policy = get_default_policy()
    assert policy.critical_path_for("src/Billing/invoice.ts") == "Payments"
    assert policy.critical_path_for(".github/workflows/ci.yml") == "GitHub Actions"
    assert policy.critical_path_for("src/components/Button.tsx") is None
    assert policy.is_test_file("src/__tests__/button.tsx")
    assert not policy.is_test_file("src/components/Button.tsx")
