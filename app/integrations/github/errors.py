"""
GitHub API errors.
"""

from typing import Optional

import httpx

RATE_LIMIT_STATUSES = (403, 429)


class GitHubApiError(Exception):
    """Non-2xx response from the GitHub REST API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class RateLimitError(GitHubApiError):
    """403/429 response. `retry_after` is the server hint in seconds, if any."""

    def __init__(self, status_code: int, message: str, retry_after: Optional[float] = None):
        super().__init__(status_code, message)
        self.retry_after = retry_after


class GitHubAuthError(Exception):
    """GitHub App credentials missing or unusable."""


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def raise_for_github_status(response: httpx.Response) -> None:
    """Translate an error response into GitHubApiError / RateLimitError."""
    if response.is_success:
        return
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        message = data["message"]
    else:
        message = response.text[:200] or response.reason_phrase
    if response.status_code in RATE_LIMIT_STATUSES:
        raise RateLimitError(response.status_code, message, _retry_after(response))
    raise GitHubApiError(response.status_code, message)
