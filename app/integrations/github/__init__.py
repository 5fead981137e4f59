"""
GitHub integration package.
"""

from app.integrations.github.auth import GitHubAppAuth, InstallationToken
from app.integrations.github.client import (
    GitHubClient,
    GitHubClientFactory,
    github_retry_policy,
)
from app.integrations.github.errors import GitHubApiError, GitHubAuthError, RateLimitError

__all__ = [
    "GitHubAppAuth",
    "InstallationToken",
    "GitHubClient",
    "GitHubClientFactory",
    "github_retry_policy",
    "GitHubApiError",
    "GitHubAuthError",
    "RateLimitError",
]
