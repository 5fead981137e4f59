"""
GitHub REST API client for the PR scoring pipeline.

One `GitHubClient` serves one job: it holds that job's installation token,
created on the first call and reused until stale. Every public operation
runs under the client's retry policy, which retries only rate-limit
responses (403/429), waiting for `Retry-After` when GitHub sends it and
backing off exponentially otherwise. Any other error propagates at once.

The underlying `httpx.AsyncClient` is shared across jobs and owned by the
caller.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

import httpx

from app.core.config import Settings
from app.core.logging import get_logger
from app.core.retry import RetryPolicy
from app.integrations.github.auth import GitHubAppAuth, InstallationToken
from app.integrations.github.errors import RateLimitError, raise_for_github_status
from app.integrations.github.schemas import FileDiff, PrDetails, RepositoryInfo

logger = get_logger(__name__)

T = TypeVar("T")

FILES_PER_PAGE = 100
# GitHub stops listing PR files at 3000
MAX_FILE_PAGES = 30
USER_AGENT = "pr-risk-radar/1.0"


def github_retry_policy(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RetryPolicy:
    """Rate-limit-only retry honoring Retry-After."""

    def _backoff(attempt: int, error: BaseException) -> float:
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return error.retry_after
        return base_delay * (2**attempt)

    return RetryPolicy(
        max_attempts=max_attempts,
        backoff=_backoff,
        retryable=lambda error: isinstance(error, RateLimitError),
        sleep=sleep,
        name="GitHub API",
    )


class GitHubClient:
    """Installation-scoped client for interacting with GitHub REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        app_auth: GitHubAppAuth,
        installation_id: int,
        retry_policy: Optional[RetryPolicy] = None,
        api_url: str = "https://api.github.com",
    ):
        self._http = http_client
        self._auth = app_auth
        self.installation_id = installation_id
        self._policy = retry_policy or github_retry_policy()
        self.base_url = api_url.rstrip("/")
        self._token: Optional[InstallationToken] = None
        self.token_requests = 0

    async def _ensure_token(self) -> str:
        if self._token is None or self._token.is_stale():
            self._token = await self._auth.get_installation_token(self.installation_id)
            self.token_requests += 1
        return self._token.token

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._ensure_token()
        headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        response = await self._http.request(
            method, f"{self.base_url}{path}", headers=headers, **kwargs
        )
        if response.status_code == 401:
            # Revoked or expired early: next call re-authenticates
            self._token = None
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is not None and remaining == "0":
            logger.warning(
                "GitHub rate limit exhausted for installation %s (reset at %s)",
                self.installation_id,
                response.headers.get("x-ratelimit-reset"),
            )
        raise_for_github_status(response)
        return response

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        def _on_retry(attempt: int, error: BaseException, delay: float) -> None:
            logger.warning(
                "GitHub %s rate limited (attempt %d), retrying in %.1fs: %s",
                operation,
                attempt + 1,
                delay,
                error,
            )

        return await self._policy.run(fn, on_retry=_on_retry)

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        async def _fetch() -> RepositoryInfo:
            response = await self._request("GET", f"/repos/{owner}/{repo}")
            return RepositoryInfo.from_api(response.json())

        return await self._call("get_repository", _fetch)

    async def _list_files(self, owner: str, repo: str, pr_number: int) -> List[Dict[str, Any]]:
        files: List[Dict[str, Any]] = []
        for page in range(1, MAX_FILE_PAGES + 1):
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{pr_number}/files",
                params={"per_page": FILES_PER_PAGE, "page": page},
            )
            batch = response.json()
            files.extend(batch)
            if len(batch) < FILES_PER_PAGE:
                break
        return files

    async def fetch_pr_details(self, owner: str, repo: str, pr_number: int) -> PrDetails:
        """
        Fetch PR summary and the full changed-file list.

        Args:
            owner: Repository owner (e.g., "octocat")
            repo: Repository name (e.g., "Hello-World")
            pr_number: Pull request number

        Returns:
            PrDetails with counts taken from the PR summary and paths from
            the paginated file listing.
        """

        async def _fetch() -> PrDetails:
            pr_response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")
            pr = pr_response.json()
            files = await self._list_files(owner, repo, pr_number)
            return PrDetails(
                github_pr_id=pr["id"],
                number=pr["number"],
                title=pr.get("title") or "",
                author=(pr.get("user") or {}).get("login"),
                state=pr.get("state", "open"),
                head_sha=(pr.get("head") or {}).get("sha"),
                base_ref=(pr.get("base") or {}).get("ref"),
                head_ref=(pr.get("head") or {}).get("ref"),
                additions=pr.get("additions", 0),
                deletions=pr.get("deletions", 0),
                changed_files=pr.get("changed_files", len(files)),
                changed_files_list=[f["filename"] for f in files],
                merged_at=pr.get("merged_at"),
            )

        return await self._call("fetch_pr_details", _fetch)

    async def fetch_pr_file_diffs(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        file_paths: Optional[Sequence[str]] = None,
    ) -> List[FileDiff]:
        """
        Fetch per-file patches, optionally restricted to `file_paths`.

        Patches are absent for binary or oversized files. Results follow the
        order of `file_paths` when given.
        """

        async def _fetch() -> List[FileDiff]:
            diffs = [FileDiff.from_api(f) for f in await self._list_files(owner, repo, pr_number)]
            if file_paths is None:
                return diffs
            by_name = {d.filename: d for d in diffs}
            return [by_name[path] for path in file_paths if path in by_name]

        return await self._call("fetch_pr_file_diffs", _fetch)

    async def create_issue_comment(self, owner: str, repo: str, pr_number: int, body: str) -> int:
        """Post a comment on the PR conversation. Returns the comment id."""

        async def _post() -> int:
            response = await self._request(
                "POST",
                f"/repos/{owner}/{repo}/issues/{pr_number}/comments",
                json={"body": body},
            )
            return response.json()["id"]

        return await self._call("create_issue_comment", _post)


class GitHubClientFactory:
    """Builds one `GitHubClient` per job over a shared connection pool."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        app_auth: GitHubAppAuth,
        retry_policy: RetryPolicy,
        api_url: str = "https://api.github.com",
    ):
        self._http = http_client
        self._auth = app_auth
        self._policy = retry_policy
        self._api_url = api_url

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "GitHubClientFactory":
        return cls(
            http_client=http_client,
            app_auth=GitHubAppAuth.from_settings(settings, http_client),
            retry_policy=github_retry_policy(
                max_attempts=settings.GITHUB_MAX_RETRIES,
                base_delay=settings.GITHUB_RETRY_BASE_DELAY,
            ),
            api_url=settings.GITHUB_API_URL,
        )

    def for_installation(self, installation_id: int) -> GitHubClient:
        return GitHubClient(
            self._http,
            self._auth,
            installation_id,
            retry_policy=self._policy,
            api_url=self._api_url,
        )
