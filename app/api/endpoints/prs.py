import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.db.models import PullRequestDetail, PullRequestSummary
from app.dependencies.database import get_store
from app.services.pr_scoring.store import PullRequestStore

router = APIRouter()


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class PullRequestPage(BaseModel):
    data: List[PullRequestSummary]
    pagination: Pagination


@router.get("", response_model=PullRequestPage)
async def list_pull_requests(
    limit: int = Query(default=50, gt=0, le=100),
    offset: int = Query(default=0, ge=0),
    store: PullRequestStore = Depends(get_store),
):
    """
    List PRs newest first, each with its latest score.
    """
    items, total = await store.list_pull_requests(limit=limit, offset=offset)
    return PullRequestPage(
        data=[pr.to_summary() for pr in items],
        pagination=Pagination(
            limit=limit, offset=offset, total=total, has_more=offset + limit < total
        ),
    )


@router.get("/{pr_id}", response_model=PullRequestDetail)
async def get_pull_request(pr_id: uuid.UUID, store: PullRequestStore = Depends(get_store)):
    """
    One PR with its score history (newest first) and latest AI analysis.
    """
    pr = await store.get_pull_request(pr_id)
    if pr is None:
        raise HTTPException(status_code=404, detail=f"PR with ID {pr_id} not found")
    return pr.to_detail()
