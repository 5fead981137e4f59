"""
Database dependencies for API routes.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from app.services.pr_scoring.store import PullRequestStore


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory created by the application lifespan."""
    return request.app.state.session_factory


def get_store(request: Request) -> PullRequestStore:
    return PullRequestStore(get_session_factory(request))
