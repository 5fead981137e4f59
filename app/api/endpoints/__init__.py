from .github import router as github_router
from .health import router as health_router
from .prs import router as prs_router
from .stats import router as stats_router

__all__ = ["github_router", "health_router", "prs_router", "stats_router"]
