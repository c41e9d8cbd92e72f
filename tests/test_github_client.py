"""Tests for the GitHub API client."""

from __future__ import annotations

import time

import httpx
import pytest

from gitmentor.github_client import (
    GENERIC_RATE_LIMIT_MESSAGE,
    GitHubAPIError,
    RateLimitError,
    UserNotFoundError,
    get_languages,
    get_user,
    list_commits_by_author,
    list_repositories,
    parse_username,
    rate_limit_message,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.github.com")


def _rate_limited(headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(
        403,
        headers={"X-RateLimit-Remaining": "0", **(headers or {})},
        json={"message": "API rate limit exceeded for 1.2.3.4."},
    )


# --- parse_username ---


@pytest.mark.parametrize(
    "value",
    ["octocat", " octocat ", "@octocat", "https://github.com/octocat", "github.com/octocat/", "www.github.com/octocat/repo"],
)
def test_parse_username_accepts_common_forms(value):
    assert parse_username(value) == "octocat"


@pytest.mark.parametrize("value", ["", "-octocat", "octo--cat", "octo cat", "https://github.com/", "a" * 40])
def test_parse_username_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_username(value)


# --- rate limit message ---


def test_rate_limit_message_reports_minutes():
    message, minutes = rate_limit_message(1_000_000 + 12 * 60, now=1_000_000)
    assert minutes == 12
    assert "12 minutes" in message


def test_rate_limit_message_rounds_up_partial_minutes():
    _, minutes = rate_limit_message(1_000_000 + 61, now=1_000_000)
    assert minutes == 2


def test_rate_limit_message_never_below_one_minute():
    _, minutes = rate_limit_message(1_000_000 - 30, now=1_000_000)
    assert minutes == 1


# --- get_user ---


@pytest.mark.asyncio
async def test_get_user_maps_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/users/octocat"
        return httpx.Response(200, json={
            "login": "octocat",
            "name": "The Octocat",
            "bio": None,
            "public_repos": 8,
            "followers": 100,
            "following": 9,
            "created_at": "2011-01-25T18:44:36Z",
            "avatar_url": "https://avatars.githubusercontent.com/u/583231",
        })

    async with _client(handler) as client:
        user = await get_user("octocat", client)

    assert user.username == "octocat"
    assert user.display_name == "The Octocat"
    assert user.public_repo_count == 8
    assert user.account_created_at.year == 2011


@pytest.mark.asyncio
async def test_get_user_not_found():
    async with _client(lambda request: httpx.Response(404, json={"message": "Not Found"})) as client:
        with pytest.raises(UserNotFoundError):
            await get_user("ghost-user", client)


@pytest.mark.asyncio
async def test_rate_limit_with_reset_header_reports_minutes():
    reset = str(int(time.time()) + 12 * 60)

    async with _client(lambda request: _rate_limited({"X-RateLimit-Reset": reset})) as client:
        with pytest.raises(RateLimitError) as exc_info:
            await get_user("octocat", client)

    assert "12 minutes" in str(exc_info.value)
    assert exc_info.value.retry_after_minutes == 12


@pytest.mark.asyncio
async def test_rate_limit_falls_back_to_rate_limit_endpoint():
    reset = int(time.time()) + 30 * 60

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/rate_limit":
            return httpx.Response(200, json={"rate": {"limit": 60, "remaining": 0, "reset": reset}})
        return _rate_limited()

    async with _client(handler) as client:
        with pytest.raises(RateLimitError) as exc_info:
            await get_user("octocat", client)

    assert "30 minutes" in str(exc_info.value)


@pytest.mark.asyncio
async def test_rate_limit_generic_message_when_reset_unknown():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/rate_limit":
            return httpx.Response(500)
        return _rate_limited()

    async with _client(handler) as client:
        with pytest.raises(RateLimitError) as exc_info:
            await get_user("octocat", client)

    assert str(exc_info.value) == GENERIC_RATE_LIMIT_MESSAGE
    assert exc_info.value.retry_after_minutes is None


@pytest.mark.asyncio
async def test_forbidden_without_quota_message_is_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, headers={"X-RateLimit-Remaining": "42"}, json={"message": "Forbidden"})

    async with _client(handler) as client:
        with pytest.raises(GitHubAPIError):
            await get_user("octocat", client)


@pytest.mark.asyncio
async def test_network_error_is_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(GitHubAPIError):
            await get_user("octocat", client)


# --- repositories ---


@pytest.mark.asyncio
async def test_list_repositories_maps_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["type"] == "owner"
        return httpx.Response(200, json=[
            {
                "name": "hello-world",
                "description": "My first repo",
                "language": "Python",
                "stargazers_count": 5,
                "forks_count": 1,
                "updated_at": "2024-05-01T10:00:00Z",
                "topics": ["demo"],
                "archived": False,
                "fork": True,
            },
        ])

    async with _client(handler) as client:
        repos = await list_repositories("octocat", client)

    assert len(repos) == 1
    assert repos[0].name == "hello-world"
    assert repos[0].star_count == 5
    assert repos[0].is_fork is True
    assert repos[0].language_bytes == {}


def _repo_entry(name: str, stars: int = 0) -> dict:
    return {"name": name, "stargazers_count": stars, "updated_at": "2024-05-01T10:00:00Z"}


@pytest.mark.asyncio
async def test_list_repositories_follows_next_link():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json=[_repo_entry("old-but-popular", stars=900)])
        return httpx.Response(
            200,
            headers={"Link": '<https://api.github.com/users/octocat/repos?page=2>; rel="next"'},
            json=[_repo_entry("recent", stars=1)],
        )

    async with _client(handler) as client:
        repos = await list_repositories("octocat", client)

    assert [repo.name for repo in repos] == ["recent", "old-but-popular"]
    assert len(seen) == 2
    assert seen[1] == "https://api.github.com/users/octocat/repos?page=2"


@pytest.mark.asyncio
async def test_list_repositories_stops_at_page_cap():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(
            200,
            headers={"Link": f'<https://api.github.com/users/octocat/repos?page={calls + 1}>; rel="next"'},
            json=[_repo_entry(f"repo-{calls}")],
        )

    async with _client(handler) as client:
        repos = await list_repositories("octocat", client, max_pages=3)

    assert calls == 3
    assert len(repos) == 3


@pytest.mark.asyncio
async def test_list_repositories_malformed_body_is_upstream_error():
    async with _client(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
        with pytest.raises(GitHubAPIError):
            await list_repositories("octocat", client)


@pytest.mark.asyncio
async def test_get_user_malformed_body_is_upstream_error():
    async with _client(lambda request: httpx.Response(200, text="<html>maintenance</html>")) as client:
        with pytest.raises(GitHubAPIError, match="Malformed JSON"):
            await get_user("octocat", client)


@pytest.mark.asyncio
async def test_get_languages():
    async with _client(lambda request: httpx.Response(200, json={"Python": 1200, "Shell": 30})) as client:
        languages = await get_languages("octocat", "hello-world", client)
    assert languages == {"Python": 1200, "Shell": 30}


@pytest.mark.asyncio
async def test_list_commits_by_author_empty_repo():
    async with _client(lambda request: httpx.Response(409, json={"message": "Git Repository is empty."})) as client:
        commits = await list_commits_by_author("upstream", "project", "octocat", client)
    assert commits == []


@pytest.mark.asyncio
async def test_list_commits_by_author_passes_author_and_limit():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["author"] == "octocat"
        assert request.url.params["per_page"] == "100"
        return httpx.Response(200, json=[{"sha": str(i)} for i in range(100)])

    async with _client(handler) as client:
        commits = await list_commits_by_author("upstream", "project", "octocat", client, limit=100)
    assert len(commits) == 100
