from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies.database import get_store
from app.services.pr_scoring.store import PullRequestStore

router = APIRouter()


class FolderRisk(BaseModel):
    folder: str
    pr_count: int
    average_score: float


class Stats(BaseModel):
    total_prs: int
    average_score: float
    counts_by_level: Dict[str, int]
    top_risky_folders: List[FolderRisk]


@router.get("", response_model=Stats)
async def get_stats(store: PullRequestStore = Depends(get_store)):
    """
    Aggregate risk statistics over the latest score of every PR.
    """
    return await store.get_stats()
