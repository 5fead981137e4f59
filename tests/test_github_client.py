from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, List

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.integrations.github.auth import GitHubAppAuth, InstallationToken
from app.integrations.github.client import GitHubClient, github_retry_policy
from app.integrations.github.errors import GitHubApiError, GitHubAuthError, RateLimitError

API = "https://api.github.test"


class FakeAppAuth:
    def __init__(self) -> None:
        self.calls = 0

    async def get_installation_token(self, installation_id: int) -> InstallationToken:
        self.calls += 1
        return InstallationToken(
            token=f"ghs_token_{self.calls}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )


def make_client(
    handler: Callable[[httpx.Request], httpx.Response], sleep
) -> tuple[GitHubClient, FakeAppAuth]:
    auth = FakeAppAuth()
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = GitHubClient(
        http,
        auth,
        installation_id=42,
        retry_policy=github_retry_policy(max_attempts=3, base_delay=1.0, sleep=sleep),
        api_url=API,
    )
    return client, auth


def repo_json() -> dict:
    return {
        "id": 1296269,
        "full_name": "octocat/hello-world",
        "name": "hello-world",
        "owner": {"login": "octocat"},
        "private": False,
    }


def file_json(name: str, patch: str | None = "@@ -1 +1 @@\n-a\n+b") -> dict:
    return {"filename": name, "patch": patch, "additions": 1, "deletions": 1, "status": "modified"}


async def test_get_repository_sends_installation_token(sleep) -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=repo_json())

    client, _ = make_client(handler, sleep)
    repo = await client.get_repository("octocat", "hello-world")

    assert repo.github_repo_id == 1296269
    assert repo.owner == "octocat"
    assert seen[0].url.path == "/repos/octocat/hello-world"
    assert seen[0].headers["Authorization"] == "token ghs_token_1"


async def test_token_is_created_once_per_client(sleep) -> None:
    client, auth = make_client(lambda request: httpx.Response(200, json=repo_json()), sleep)

    await client.get_repository("octocat", "hello-world")
    await client.get_repository("octocat", "hello-world")

    assert auth.calls == 1
    assert client.token_requests == 1


async def test_rate_limit_honors_retry_after(sleep) -> None:
    responses = [
        httpx.Response(429, headers={"retry-after": "7"}, json={"message": "slow down"}),
        httpx.Response(200, json=repo_json()),
    ]
    client, _ = make_client(lambda request: responses.pop(0), sleep)

    repo = await client.get_repository("octocat", "hello-world")
    assert repo.name == "hello-world"
    assert sleep.delays == [7.0]


async def test_rate_limit_without_hint_backs_off_exponentially(sleep) -> None:
    responses = [
        httpx.Response(403, json={"message": "API rate limit exceeded"}),
        httpx.Response(403, json={"message": "API rate limit exceeded"}),
        httpx.Response(200, json=repo_json()),
    ]
    client, _ = make_client(lambda request: responses.pop(0), sleep)

    await client.get_repository("octocat", "hello-world")
    assert sleep.delays == [1.0, 2.0]


async def test_rate_limit_gives_up_after_max_attempts(sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, json={"message": "slow down"})

    client, _ = make_client(handler, sleep)
    with pytest.raises(RateLimitError) as exc_info:
        await client.get_repository("octocat", "hello-world")

    assert exc_info.value.status_code == 429
    assert len(calls) == 3


async def test_other_errors_are_not_retried(sleep) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"message": "Not Found"})

    client, _ = make_client(handler, sleep)
    with pytest.raises(GitHubApiError) as exc_info:
        await client.get_repository("octocat", "missing")

    assert not isinstance(exc_info.value, RateLimitError)
    assert exc_info.value.message == "Not Found"
    assert len(calls) == 1
    assert sleep.delays == []


async def test_fetch_pr_details_paginates_file_listing(sleep) -> None:
    first_page = [file_json(f"src/file_{i}.py") for i in range(100)]
    second_page = [file_json("README.md")]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/files"):
            page = int(request.url.params["page"])
            assert request.url.params["per_page"] == "100"
            return httpx.Response(200, json=first_page if page == 1 else second_page)
        return httpx.Response(
            200,
            json={
                "id": 987654321,
                "number": 12,
                "title": "Add login",
                "user": {"login": "mona"},
                "state": "open",
                "head": {"sha": "abc123", "ref": "feature"},
                "base": {"ref": "main"},
                "additions": 150,
                "deletions": 40,
                "changed_files": 101,
                "merged_at": None,
            },
        )

    client, _ = make_client(handler, sleep)
    details = await client.fetch_pr_details("octocat", "hello-world", 12)

    assert details.github_pr_id == 987654321
    assert details.author == "mona"
    assert details.head_sha == "abc123"
    assert details.changed_files == 101
    assert len(details.changed_files_list) == 101
    assert details.changed_files_list[-1] == "README.md"


async def test_fetch_file_diffs_filters_and_orders(sleep) -> None:
    files = [file_json("a.py"), file_json("b.png", patch=None), file_json("c.py")]
    client, _ = make_client(lambda request: httpx.Response(200, json=files), sleep)

    diffs = await client.fetch_pr_file_diffs("o", "r", 1, file_paths=["c.py", "missing.py", "b.png"])

    assert [d.filename for d in diffs] == ["c.py", "b.png"]
    assert diffs[1].patch is None
    assert diffs[0].churn == 2


async def test_create_issue_comment_returns_id(sleep) -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.method == "POST"
        assert request.url.path == "/repos/o/r/issues/5/comments"
        return httpx.Response(201, json={"id": 555})

    client, _ = make_client(handler, sleep)
    assert await client.create_issue_comment("o", "r", 5, "hello") == 555
    assert bodies == [{"body": "hello"}]


def _rsa_pem() -> tuple[str, rsa.RSAPublicKey]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return pem, key.public_key()


async def test_app_jwt_is_rs256_with_backdated_iat() -> None:
    pem, public_key = _rsa_pem()
    async with httpx.AsyncClient() as http:
        auth = GitHubAppAuth("12345", pem.replace("\n", "\\n"), http)
        token = auth.create_app_jwt(now=1_700_000_000)

    claims = jwt.decode(token, public_key, algorithms=["RS256"], options={"verify_exp": False, "verify_iat": False})
    assert claims == {"iss": "12345", "iat": 1_699_999_940, "exp": 1_700_000_600}


async def test_installation_token_exchange() -> None:
    pem, _ = _rsa_pem()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/app/installations/42/access_tokens"
        assert request.headers["Authorization"].startswith("Bearer ")
        return httpx.Response(201, json={"token": "ghs_abc", "expires_at": "2030-01-01T00:00:00Z"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        auth = GitHubAppAuth("12345", pem, http, api_url=API)
        token = await auth.get_installation_token(42)

    assert token.token == "ghs_abc"
    assert token.expires_at == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert not token.is_stale(datetime(2029, 12, 31, 23, 58, tzinfo=timezone.utc))
    assert token.is_stale(datetime(2029, 12, 31, 23, 59, 30, tzinfo=timezone.utc))


async def test_missing_app_credentials() -> None:
    async with httpx.AsyncClient() as http:
        auth = GitHubAppAuth(None, None, http)
        with pytest.raises(GitHubAuthError):
            await auth.get_installation_token(1)
