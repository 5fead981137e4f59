from fastapi import APIRouter
from app.api.endpoints import github_router, health_router, prs_router, stats_router

router = APIRouter()

router.include_router(health_router, prefix="/health", tags=["health"])
router.include_router(github_router, prefix="/github", tags=["github"])
router.include_router(prs_router, prefix="/prs", tags=["prs"])
router.include_router(stats_router, prefix="/stats", tags=["stats"])
