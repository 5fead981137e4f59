from __future__ import annotations

import pytest

from app.services.pr_scoring.store import aggregate_stats, top_folder


@pytest.mark.parametrize(
    "path, folder",
    [
        ("src/auth/login.ts", "src/auth"),
        ("src/index.ts", "src/index.ts"),
        ("README.md", None),
        ("a/b/c/d.py", "a/b"),
    ],
)
def test_top_folder(path: str, folder: str) -> None:
    assert top_folder(path) == folder


def test_empty_stats() -> None:
    stats = aggregate_stats([], total_prs=0)
    assert stats == {
        "total_prs": 0,
        "average_score": 0,
        "counts_by_level": {"LOW": 0, "MED": 0, "HIGH": 0},
        "top_risky_folders": [],
    }


def test_stats_aggregate_latest_scores() -> None:
    latest = [
        (80, "HIGH", ["src/auth/login.ts", "src/auth/session.ts", "README.md"]),
        (40, "MED", ["src/auth/token.ts", "src/ui/button.tsx"]),
        (10, "LOW", ["docs/intro.md"]),
    ]
    stats = aggregate_stats(latest, total_prs=4)

    assert stats["total_prs"] == 4
    assert stats["average_score"] == 43.33
    assert stats["counts_by_level"] == {"LOW": 1, "MED": 1, "HIGH": 1}
    assert stats["top_risky_folders"] == [
        {"folder": "src/auth", "pr_count": 2, "average_score": 60.0},
        {"folder": "src/ui", "pr_count": 1, "average_score": 40.0},
        {"folder": "docs/intro.md", "pr_count": 1, "average_score": 10.0},
    ]


def test_top_folders_are_capped_and_tie_broken_by_name() -> None:
    latest = [(50, "MED", [f"pkg/mod{i:02d}/x.py"]) for i in range(12)]
    folders = aggregate_stats(latest, total_prs=12)["top_risky_folders"]

    assert len(folders) == 10
    assert folders[0]["folder"] == "pkg/mod00"
    assert folders[-1]["folder"] == "pkg/mod09"
