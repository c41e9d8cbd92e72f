import logging
import math
import re
import time
from datetime import datetime, timezone
from typing import AsyncGenerator
from contextlib import asynccontextmanager

import httpx

from gitmentor.config import GITHUB_API_BASE, GITHUB_TOKEN, MAX_REPO_PAGES, REQUEST_TIMEOUT
from gitmentor.schemas import GitHubUser, Repository

logger = logging.getLogger(__name__)

GENERIC_RATE_LIMIT_MESSAGE = (
    "GitHub API rate limit exceeded. Please try again in an hour "
    "or add a GitHub token for higher limits."
)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")


class GitHubError(Exception):
    pass


class UserNotFoundError(GitHubError):
    pass


class RateLimitError(GitHubError):
    def __init__(self, message: str, retry_after_minutes: int | None = None):
        super().__init__(message)
        self.retry_after_minutes = retry_after_minutes


class GitHubAPIError(GitHubError):
    pass


def parse_username(value: str) -> str:
    """Extract a GitHub handle from a bare name, an @mention or a profile URL."""
    value = value.strip().rstrip("/")

    # Normalize: remove protocol and www. prefixes
    value = re.sub(r"^https?://", "", value)
    value = re.sub(r"^www\.", "", value)

    if value.startswith("github.com/"):
        parts = [p for p in value[len("github.com/"):].split("/") if p]
        if not parts:
            raise ValueError("GitHub URL must include a username")
        value = parts[0]

    value = value.lstrip("@")

    if not _USERNAME_RE.match(value):
        raise ValueError(f"Invalid GitHub username: {value!r}")

    return value


def rate_limit_message(reset_at: float, now: float | None = None) -> tuple[str, int]:
    """Build the user-facing rate limit message for a reset epoch timestamp."""
    now = time.time() if now is None else now
    minutes = max(1, math.ceil((reset_at - now) / 60))
    reset_time = datetime.fromtimestamp(reset_at, tz=timezone.utc).strftime("%H:%M:%S UTC")
    message = (
        f"GitHub API rate limit exceeded. Please try again in {minutes} minutes "
        f"(at {reset_time}). Consider adding a GitHub token for higher limits."
    )
    return message, minutes


def _build_headers() -> dict[str, str]:
    headers = {
        "User-Agent": "gitmentor/1.0",
        "Accept": "application/vnd.github+json",
    }
    if GITHUB_TOKEN:
        headers["Authorization"] = f"Bearer {GITHUB_TOKEN}"
    return headers


@asynccontextmanager
async def create_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an httpx async client configured for GitHub API."""
    if not GITHUB_TOKEN:
        logger.warning(
            "Running without GITHUB_TOKEN: rate limits are restricted to 60 requests per hour"
        )
    async with httpx.AsyncClient(
        base_url=GITHUB_API_BASE,
        headers=_build_headers(),
        timeout=REQUEST_TIMEOUT,
    ) as client:
        yield client


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code not in (403, 429):
        return False
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in response.text.lower()


async def get_rate_limit_reset(client: httpx.AsyncClient) -> int | None:
    """Ask GitHub when the core quota resets. Returns an epoch timestamp or None."""
    try:
        response = await client.get("/rate_limit")
        response.raise_for_status()
        return int(response.json()["rate"]["reset"])
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        logger.debug(f"Could not read rate limit status: {exc}")
        return None


async def _rate_limit_error(response: httpx.Response, client: httpx.AsyncClient) -> RateLimitError:
    reset_header = response.headers.get("X-RateLimit-Reset")
    reset_at: float | None = None
    if reset_header:
        try:
            reset_at = float(reset_header)
        except ValueError:
            logger.debug(f"Malformed X-RateLimit-Reset header: {reset_header!r}")
    if reset_at is None:
        reset_at = await get_rate_limit_reset(client)

    if reset_at is None:
        return RateLimitError(GENERIC_RATE_LIMIT_MESSAGE)

    message, minutes = rate_limit_message(reset_at)
    return RateLimitError(message, retry_after_minutes=minutes)


async def _get(
    url: str,
    client: httpx.AsyncClient,
    params: dict | None = None,
) -> httpx.Response:
    """GET a GitHub API path, converting network and quota failures."""
    logger.debug(f"GET {url} {params or ''}")
    try:
        response = await client.get(url, params=params)
    except httpx.RequestError as exc:
        raise GitHubAPIError(f"Network error fetching {url}: {exc}") from exc

    if _is_rate_limited(response):
        raise await _rate_limit_error(response, client)
    return response


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _json(response: httpx.Response, url: str):
    try:
        return response.json()
    except ValueError as exc:
        raise GitHubAPIError(f"Malformed JSON from {url}: {exc}") from exc


async def get_user(username: str, client: httpx.AsyncClient) -> GitHubUser:
    """Fetch public profile metadata for a handle."""
    response = await _get(f"/users/{username}", client)

    if response.status_code == 404:
        raise UserNotFoundError(f"GitHub user {username} not found")
    if response.status_code != 200:
        raise GitHubAPIError(
            f"Failed to fetch user profile: unexpected status {response.status_code}"
        )

    data = _json(response, f"/users/{username}")
    return GitHubUser(
        username=data["login"],
        display_name=data.get("name"),
        bio=data.get("bio"),
        public_repo_count=data.get("public_repos", 0),
        follower_count=data.get("followers", 0),
        following_count=data.get("following", 0),
        account_created_at=_parse_timestamp(data.get("created_at")),
        avatar_url=data.get("avatar_url", ""),
    )


async def list_repositories(
    username: str,
    client: httpx.AsyncClient,
    per_page: int = 100,
    max_pages: int = MAX_REPO_PAGES,
) -> list[Repository]:
    """List repositories owned by a handle, most recently updated first.

    Follows ``Link: rel="next"`` pagination for up to ``max_pages`` pages.
    """
    url: str | None = f"/users/{username}/repos"
    params: dict | None = {
        "type": "owner", "sort": "updated", "direction": "desc", "per_page": per_page,
    }
    entries: list[dict] = []

    for _ in range(max_pages):
        if url is None:
            break
        response = await _get(url, client, params=params)

        if response.status_code == 404:
            raise UserNotFoundError(f"GitHub user {username} not found")
        if response.status_code != 200:
            raise GitHubAPIError(
                f"Failed to fetch user repositories: unexpected status {response.status_code}"
            )

        entries.extend(_json(response, url))
        # The next link already carries the query string
        url = response.links.get("next", {}).get("url")
        params = None
    else:
        if url is not None:
            logger.warning(f"Repository listing for {username} truncated at {max_pages} pages")

    return [
        Repository(
            name=entry["name"],
            description=entry.get("description"),
            primary_language=entry.get("language"),
            star_count=entry.get("stargazers_count", 0),
            fork_count=entry.get("forks_count", 0),
            updated_at=_parse_timestamp(entry.get("updated_at")),
            topics=entry.get("topics") or [],
            is_archived=entry.get("archived", False),
            is_fork=entry.get("fork", False),
        )
        for entry in entries
    ]


async def get_languages(owner: str, repo: str, client: httpx.AsyncClient) -> dict[str, int]:
    """Fetch the per-language byte breakdown of a repository."""
    url = f"/repos/{owner}/{repo}/languages"
    response = await _get(url, client)

    if response.status_code != 200:
        raise GitHubAPIError(f"Unexpected status {response.status_code} for {url}")

    return {language: int(size) for language, size in _json(response, url).items()}


async def get_repository(owner: str, repo: str, client: httpx.AsyncClient) -> dict:
    """Fetch full repository metadata (includes ``parent`` for forks)."""
    url = f"/repos/{owner}/{repo}"
    response = await _get(url, client)

    if response.status_code != 200:
        raise GitHubAPIError(f"Unexpected status {response.status_code} for {url}")

    return _json(response, url)


async def list_commits_by_author(
    owner: str, repo: str, author: str, client: httpx.AsyncClient, limit: int = 100
) -> list[dict]:
    """List up to ``limit`` commits authored by ``author`` in a repository."""
    url = f"/repos/{owner}/{repo}/commits"
    response = await _get(url, client, params={"author": author, "per_page": min(limit, 100)})

    # 409: repository is empty
    if response.status_code == 409:
        return []
    if response.status_code != 200:
        raise GitHubAPIError(f"Unexpected status {response.status_code} for {url}")

    return _json(response, url)[:limit]
