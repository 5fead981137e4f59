"""
Persistence for repositories, pull requests, scores and AI analyses.

Writes are used by the worker pipeline; reads back the query API.
"""

import uuid
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import desc
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.logging import get_logger
from app.db.models import PrAiAnalysis, PrScore, PullRequest, Repo
from app.integrations.github.schemas import PrDetails, RepositoryInfo
from app.services.ai.schemas import AiOutput
from app.services.scoring.rules import ScoringResult

logger = get_logger(__name__)

TOP_FOLDERS = 10
RISK_LEVELS = ("LOW", "MED", "HIGH")


def top_folder(path: str) -> Optional[str]:
    """First two path segments ("src/auth" for "src/auth/login.ts"); None for root files."""
    parts = path.split("/")
    if len(parts) < 2:
        return None
    return "/".join(parts[:2])


def aggregate_stats(latest: Iterable[Tuple[int, str, Sequence[str]]], total_prs: int) -> Dict[str, Any]:
    """
    Summarize latest scores.

    Args:
        latest: (score, level, changed_files_list) for every PR that has a score.
        total_prs: Count of all PRs, scored or not.
    """
    scores: List[int] = []
    levels: Counter = Counter()
    folder_scores: Dict[str, List[int]] = defaultdict(list)
    for score, level, files in latest:
        scores.append(score)
        levels[level] += 1
        for folder in {f for f in map(top_folder, files or []) if f}:
            folder_scores[folder].append(score)

    folders = sorted(
        (
            {
                "folder": folder,
                "pr_count": len(values),
                "average_score": round(sum(values) / len(values), 2),
            }
            for folder, values in folder_scores.items()
        ),
        key=lambda f: (-f["average_score"], f["folder"]),
    )
    return {
        "total_prs": total_prs,
        "average_score": round(sum(scores) / len(scores), 2) if scores else 0,
        "counts_by_level": {level: levels.get(level, 0) for level in RISK_LEVELS},
        "top_risky_folders": folders[:TOP_FOLDERS],
    }


class PullRequestStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sf = session_factory

    async def upsert_pull_request(
        self,
        repository: RepositoryInfo,
        installation_id: Optional[int],
        details: PrDetails,
    ) -> uuid.UUID:
        """
        Upsert the repository, then the PR, in one transaction.

        Returns:
            Internal id of the PR row.
        """
        now = datetime.now(timezone.utc)
        repo_values = {
            "full_name": repository.full_name,
            "owner": repository.owner,
            "name": repository.name,
            "installation_id": installation_id,
            "private": repository.private,
        }
        pr_values = {
            "number": details.number,
            "title": details.title,
            "state": details.state,
            "author": details.author,
            "head_sha": details.head_sha,
            "base_ref": details.base_ref,
            "head_ref": details.head_ref,
            "additions": details.additions,
            "deletions": details.deletions,
            "changed_files": details.changed_files,
            "changed_files_list": details.changed_files_list,
            "merged_at": details.merged_at,
        }

        async with self._sf() as session:
            async with session.begin():
                repo_stmt = (
                    insert(Repo)
                    .values(
                        id=uuid.uuid4(),
                        github_repo_id=repository.github_repo_id,
                        created_at=now,
                        updated_at=now,
                        **repo_values,
                    )
                    .on_conflict_do_update(
                        index_elements=[Repo.github_repo_id],
                        set_={**repo_values, "updated_at": now},
                    )
                    .returning(Repo.id)
                )
                repo_id = (await session.execute(repo_stmt)).scalar_one()

                pr_stmt = (
                    insert(PullRequest)
                    .values(
                        id=uuid.uuid4(),
                        repo_id=repo_id,
                        github_pr_id=details.github_pr_id,
                        created_at=now,
                        updated_at=now,
                        **pr_values,
                    )
                    .on_conflict_do_update(
                        index_elements=[PullRequest.github_pr_id],
                        set_={**pr_values, "repo_id": repo_id, "updated_at": now},
                    )
                    .returning(PullRequest.id)
                )
                pr_id = (await session.execute(pr_stmt)).scalar_one()

        logger.info(
            "Upserted PR %s#%s (id=%s)", repository.full_name, details.number, pr_id
        )
        return pr_id

    async def insert_score(self, pull_request_id: uuid.UUID, result: ScoringResult) -> uuid.UUID:
        row = PrScore(
            pull_request_id=pull_request_id,
            score=result.score,
            level=result.level,
            reasons=list(result.reasons),
            features=result.features.model_dump(),
        )
        async with self._sf() as session:
            async with session.begin():
                session.add(row)
        return row.id

    async def insert_analysis(
        self,
        pull_request_id: uuid.UUID,
        output: AiOutput,
        model: str,
        prompt_version: str,
    ) -> uuid.UUID:
        row = PrAiAnalysis(
            pull_request_id=pull_request_id,
            analysis_json=output.model_dump(exclude_none=True),
            model=model,
            prompt_version=prompt_version,
        )
        async with self._sf() as session:
            async with session.begin():
                session.add(row)
        return row.id

    async def get_pull_request(self, pull_request_id: uuid.UUID) -> Optional[PullRequest]:
        """Fetch one PR with repo, score history and analyses loaded."""
        statement = (
            select(PullRequest)
            .where(PullRequest.id == pull_request_id)
            .options(
                selectinload(PullRequest.repo),
                selectinload(PullRequest.scores),
                selectinload(PullRequest.ai_analyses),
            )
        )
        async with self._sf() as session:
            result = await session.execute(statement)
            return result.scalars().first()

    async def list_pull_requests(self, limit: int = 50, offset: int = 0) -> Tuple[List[PullRequest], int]:
        """
        Fetch PRs newest first with pagination.

        Returns:
            (page of PRs with repo and scores loaded, total PR count)
        """
        statement = (
            select(PullRequest)
            .options(selectinload(PullRequest.repo), selectinload(PullRequest.scores))
            .order_by(desc(PullRequest.created_at))
            .offset(offset)
            .limit(limit)
        )
        async with self._sf() as session:
            result = await session.execute(statement)
            items = list(result.scalars().all())
            total = await self._count(session)
        return items, total

    @staticmethod
    async def _count(session: AsyncSession) -> int:
        # pylint: disable-next=not-callable
        statement = select(func.count()).select_from(PullRequest)
        result = await session.execute(statement)
        return result.scalar() or 0

    async def get_stats(self) -> Dict[str, Any]:
        """Totals, average latest score, level counts and riskiest folders."""
        statement = select(PullRequest).options(selectinload(PullRequest.scores))
        async with self._sf() as session:
            result = await session.execute(statement)
            prs = list(result.scalars().all())

        latest = []
        for pr in prs:
            score = pr.latest_score
            if score is not None:
                latest.append((score.score, score.level, pr.changed_files_list))
        return aggregate_stats(latest, total_prs=len(prs))
