"""
GitHub App authentication utilities.

The App signs a short-lived JWT with its private key and exchanges it for an
installation access token (valid about an hour). Tokens are requested lazily
by `GitHubClient` and reused until close to expiry.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import jwt

from app.core.config import Settings
from app.integrations.github.errors import GitHubAuthError, raise_for_github_status

JWT_BACKDATE_SECONDS = 60
JWT_LIFETIME_SECONDS = 10 * 60
TOKEN_REFRESH_LEEWAY = timedelta(seconds=60)


@dataclass(frozen=True)
class InstallationToken:
    token: str
    expires_at: datetime

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now + TOKEN_REFRESH_LEEWAY >= self.expires_at


def _parse_expiry(value: Optional[str]) -> datetime:
    if not value:
        # GitHub always sends expires_at; assume the documented one hour otherwise
        return datetime.now(timezone.utc) + timedelta(hours=1)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GitHubAppAuth:
    """Exchanges Private Key + Installation ID for installation tokens."""

    def __init__(
        self,
        app_id: Optional[str],
        private_key: Optional[str],
        http_client: httpx.AsyncClient,
        api_url: str = "https://api.github.com",
    ):
        self._app_id = app_id
        # Keys pasted into .env usually carry literal "\n" sequences
        self._private_key = private_key.replace("\\n", "\n") if private_key else None
        self._http = http_client
        self._api_url = api_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "GitHubAppAuth":
        return cls(
            app_id=settings.GITHUB_APP_ID,
            private_key=settings.GITHUB_APP_PRIVATE_KEY,
            http_client=http_client,
            api_url=settings.GITHUB_API_URL,
        )

    def create_app_jwt(self, now: Optional[float] = None) -> str:
        """Create the App JWT (the "ID badge" for the App)."""
        if not self._app_id or not self._private_key:
            raise GitHubAuthError(
                "GITHUB_APP_ID and GITHUB_APP_PRIVATE_KEY must be configured"
            )
        issued = int(now if now is not None else time.time())
        payload = {
            "iat": issued - JWT_BACKDATE_SECONDS,
            "exp": issued + JWT_LIFETIME_SECONDS,
            "iss": self._app_id,
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except (ValueError, jwt.PyJWTError) as exc:
            raise GitHubAuthError(f"Invalid GitHub App private key: {exc}") from exc

    async def get_installation_token(self, installation_id: int) -> InstallationToken:
        """
        Request a fresh installation access token.

        Raises:
            GitHubAuthError: If App credentials are missing or invalid.
            GitHubApiError / RateLimitError: If GitHub rejects the exchange.
        """
        app_jwt = self.create_app_jwt()
        resp = await self._http.post(
            f"{self._api_url}/app/installations/{installation_id}/access_tokens",
            headers={
                "Authorization": f"Bearer {app_jwt}",
                "Accept": "application/vnd.github+json",
            },
        )
        raise_for_github_status(resp)
        data = resp.json()
        return InstallationToken(token=data["token"], expires_at=_parse_expiry(data.get("expires_at")))
