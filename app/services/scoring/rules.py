"""
Deterministic PR risk scoring.

`compute_score` turns PR metadata into a 0-100 score, a LOW/MED/HIGH level,
the top three reasons and a feature snapshot. It performs no I/O; all
thresholds come from the scoring policy.

Rules (each yields at most one reason):
1. Files changed: HIGH above `high_files`, else MED above `med_files`.
2. Lines changed (additions + deletions): same two tiers on lines.
3. Critical paths: HIGH when more than one distinct path class is touched,
   MED for exactly one.
4. No test files changed while at least one file changed: MED.
5. CI status flagged by policy (failure / unknown): MED.

Score is the sum of penalties, capped at 100 after summation.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from app.services.scoring.policy import ScoringPolicy, get_default_policy

Severity = Literal["HIGH", "MED"]
RiskLevel = Literal["LOW", "MED", "HIGH"]
CiStatus = Literal["success", "failure", "pending", "unknown"]

MAX_SCORE = 100
MAX_REASONS = 3


class ScoringInput(BaseModel):
    """PR metadata needed for scoring."""

    changed_files: int = Field(ge=0)
    additions: int = Field(ge=0)
    deletions: int = Field(ge=0)
    changed_files_list: List[str] = Field(default_factory=list)
    ci_status: Optional[CiStatus] = None


class ScoringFeatures(BaseModel):
    files_changed: int
    lines_changed: int
    touches_critical_paths: bool
    critical_paths_touched: List[str]
    has_test_changes: bool
    ci_status: Optional[str] = None


class ScoringResult(BaseModel):
    score: int = Field(ge=0, le=MAX_SCORE)
    level: RiskLevel
    reasons: List[str] = Field(max_length=MAX_REASONS)
    features: ScoringFeatures


@dataclass(frozen=True)
class RuleResult:
    reason: str
    severity: Severity


def level_for_score(score: int, policy: Optional[ScoringPolicy] = None) -> RiskLevel:
    """Map a score to its band. Total over all integers."""
    policy = policy or get_default_policy()
    if score <= policy.levels.low:
        return "LOW"
    if score <= policy.levels.med:
        return "MED"
    return "HIGH"


def _tiered_rule(
    value: int, high: int, med: int, unit: str
) -> Optional[RuleResult]:
    if value > high:
        return RuleResult(f"Large PR: {value} {unit} changed (threshold: {high})", "HIGH")
    if value > med:
        return RuleResult(f"Medium PR: {value} {unit} changed (threshold: {med})", "MED")
    return None


def evaluate_rules(
    scoring_input: ScoringInput, policy: ScoringPolicy
) -> Tuple[List[RuleResult], List[str], bool]:
    """
    Run every rule in order.

    Returns:
        (triggered rules in rule order, distinct critical path names in order
        of first appearance, whether any test file changed)
    """
    critical_paths: List[str] = []
    has_test_changes = False
    for path in scoring_input.changed_files_list:
        name = policy.critical_path_for(path)
        if name is not None and name not in critical_paths:
            critical_paths.append(name)
        if policy.is_test_file(path):
            has_test_changes = True

    lines_changed = scoring_input.additions + scoring_input.deletions
    rules: List[RuleResult] = []

    size = policy.size
    for rule in (
        _tiered_rule(scoring_input.changed_files, size.high_files, size.med_files, "files"),
        _tiered_rule(lines_changed, size.high_lines, size.med_lines, "lines"),
    ):
        if rule is not None:
            rules.append(rule)

    if len(critical_paths) > 1:
        rules.append(
            RuleResult(f"Touches multiple critical paths: {', '.join(critical_paths)}", "HIGH")
        )
    elif critical_paths:
        rules.append(RuleResult(f"Touches critical path: {critical_paths[0]}", "MED"))

    if scoring_input.changed_files > 0 and not has_test_changes:
        rules.append(RuleResult("No test files changed", "MED"))

    if scoring_input.ci_status in policy.flagged_ci_statuses:
        rules.append(RuleResult(f"CI status: {scoring_input.ci_status}", "MED"))

    return rules, critical_paths, has_test_changes


def compute_score(
    scoring_input: ScoringInput, policy: Optional[ScoringPolicy] = None
) -> ScoringResult:
    """Compute the PR risk score. Pure and deterministic."""
    policy = policy or get_default_policy()
    rules, critical_paths, has_test_changes = evaluate_rules(scoring_input, policy)

    score = min(sum(policy.penalties[rule.severity] for rule in rules), MAX_SCORE)

    # sorted() is stable: rule order is kept within a severity
    ranked = sorted(rules, key=lambda rule: 0 if rule.severity == "HIGH" else 1)

    return ScoringResult(
        score=score,
        level=level_for_score(score, policy),
        reasons=[rule.reason for rule in ranked[:MAX_REASONS]],
        features=ScoringFeatures(
            files_changed=scoring_input.changed_files,
            lines_changed=scoring_input.additions + scoring_input.deletions,
            touches_critical_paths=bool(critical_paths),
            critical_paths_touched=critical_paths,
            has_test_changes=has_test_changes,
            ci_status=scoring_input.ci_status,
        ),
    )
