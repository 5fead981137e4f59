"""
Scoring policy loading.

The thresholds, penalties and path classes used by the scoring engine live in
`policy.yaml` next to this module. The file is parsed once per path and cached.
"""

import os
import re
from functools import lru_cache
from typing import Dict, List, Optional

import yaml
from sqlmodel import Field, SQLModel

DEFAULT_POLICY_PATH = os.path.join(os.path.dirname(__file__), "policy.yaml")


@lru_cache(maxsize=None)
def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


class CriticalPathRule(SQLModel):
    """A named class of file paths considered inherently risky to modify."""

    name: str = Field(description="Display name, e.g. 'Authentication'.")
    pattern: str = Field(description="Regex searched case-insensitively in the path.")

    def matches(self, path: str) -> bool:
        return _compile(self.pattern).search(path) is not None


class SizeThresholds(SQLModel):
    high_files: int
    med_files: int
    high_lines: int
    med_lines: int


class LevelThresholds(SQLModel):
    low: int = Field(description="Highest score still rated LOW.")
    med: int = Field(description="Highest score still rated MED.")


class ScoringPolicy(SQLModel):
    """
    Parsed scoring policy.

    Parsed from policy YAML, not a database table.
    """

    size: SizeThresholds
    penalties: Dict[str, int]
    levels: LevelThresholds
    critical_paths: List[CriticalPathRule] = Field(default_factory=list)
    test_patterns: List[str] = Field(default_factory=list)
    flagged_ci_statuses: List[str] = Field(default_factory=list)

    def critical_path_for(self, path: str) -> Optional[str]:
        """Name of the first critical path class matching `path`, if any."""
        for rule in self.critical_paths:
            if rule.matches(path):
                return rule.name
        return None

    def is_critical(self, path: str) -> bool:
        return self.critical_path_for(path) is not None

    def is_test_file(self, path: str) -> bool:
        return any(_compile(p).search(path) for p in self.test_patterns)


@lru_cache(maxsize=4)
def load_policy(policy_path: str = DEFAULT_POLICY_PATH) -> ScoringPolicy:
    """
    Load and validate the scoring policy from a YAML file.

    Args:
        policy_path: Path to the policy YAML file.

    Returns:
        The validated ScoringPolicy.
    """
    with open(policy_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return ScoringPolicy.model_validate(raw)


def get_default_policy() -> ScoringPolicy:
    """Policy shipped with the package."""
    return load_policy(DEFAULT_POLICY_PATH)
