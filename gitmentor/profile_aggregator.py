import asyncio
import logging
from typing import Awaitable, TypeVar

import httpx

from gitmentor.config import FORK_COMMIT_LIMIT, INCLUDE_FORKS, MAX_REPOSITORIES, REPO_LISTING_PAGE_SIZE
from gitmentor.github_client import (
    GitHubError,
    RateLimitError,
    get_languages,
    get_repository,
    get_user,
    list_commits_by_author,
    list_repositories,
)
from gitmentor.schemas import DeveloperProfile, ForkContribution, ForkOrigin, Repository

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """Like ``asyncio.gather`` but the first failure cancels the siblings still running."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    errors = [task.exception() for task in tasks if not task.cancelled()]
    errors = [exc for exc in errors if exc is not None]
    if errors:
        raise errors[0]
    return [task.result() for task in tasks]


def rank_repositories(repositories: list[Repository]) -> list[Repository]:
    """Non-forks first, then by descending stars. Ties keep listing order."""
    return sorted(repositories, key=lambda repo: (repo.is_fork, -repo.star_count))


def select_repositories(
    repositories: list[Repository],
    max_repositories: int = MAX_REPOSITORIES,
    include_forks: bool = INCLUDE_FORKS,
) -> list[Repository]:
    """Drop archived (and optionally forked) repositories, rank and truncate."""
    candidates = [
        repo for repo in repositories
        if not repo.is_archived and (include_forks or not repo.is_fork)
    ]
    return rank_repositories(candidates)[:max_repositories]


async def _fetch_languages(username: str, repo: Repository, client: httpx.AsyncClient) -> dict[str, int]:
    try:
        return await get_languages(username, repo.name, client)
    except RateLimitError:
        raise
    except GitHubError as exc:
        # Missing language data is not fatal: the repo is kept with an empty map
        logger.warning(f"Language lookup failed for {username}/{repo.name}: {exc}")
        return {}


async def _fetch_fork_details(
    username: str, repo: Repository, client: httpx.AsyncClient
) -> tuple[ForkOrigin | None, ForkContribution | None]:
    """Resolve a fork's origin and count the user's commits there. Never raises."""
    try:
        data = await get_repository(username, repo.name, client)
        parent = data.get("parent")
        if not parent:
            return None, None

        origin = ForkOrigin(full_name=parent["full_name"], url=parent["html_url"])
        parent_owner, parent_name = parent["full_name"].split("/", 1)
        commits = await list_commits_by_author(
            parent_owner, parent_name, username, client, limit=FORK_COMMIT_LIMIT
        )
        count = min(len(commits), FORK_COMMIT_LIMIT)
        return origin, ForkContribution(has_commits=count > 0, commit_count=count)
    except (GitHubError, KeyError, ValueError) as exc:
        logger.warning(f"Fork lookup failed for {username}/{repo.name}: {exc}")
        return None, None


async def _enrich_repository(username: str, repo: Repository, client: httpx.AsyncClient) -> Repository:
    if repo.is_fork:
        languages, (origin, contribution) = await _gather_or_cancel(
            _fetch_languages(username, repo, client),
            _fetch_fork_details(username, repo, client),
        )
        return repo.model_copy(update={
            "language_bytes": languages,
            "fork_origin": origin,
            "fork_contribution": contribution,
        })

    languages = await _fetch_languages(username, repo, client)
    return repo.model_copy(update={"language_bytes": languages})


async def fetch_ranked_repositories(
    username: str,
    client: httpx.AsyncClient,
    max_repositories: int = MAX_REPOSITORIES,
    include_forks: bool = INCLUDE_FORKS,
) -> list[Repository]:
    """List, select and enrich a user's repositories (languages, fork origin)."""
    listing = await list_repositories(username, client, per_page=REPO_LISTING_PAGE_SIZE)
    selected = select_repositories(listing, max_repositories, include_forks)
    logger.info(f"Selected {len(selected)} of {len(listing)} repositories for {username}")

    return await _gather_or_cancel(
        *[_enrich_repository(username, repo, client) for repo in selected]
    )


async def build_profile(
    username: str,
    client: httpx.AsyncClient,
    max_repositories: int = MAX_REPOSITORIES,
    include_forks: bool = INCLUDE_FORKS,
) -> DeveloperProfile:
    """Fetch user metadata and repositories concurrently into a DeveloperProfile.

    Raises UserNotFoundError, RateLimitError or GitHubAPIError from the data source.
    """
    user, repositories = await _gather_or_cancel(
        get_user(username, client),
        fetch_ranked_repositories(username, client, max_repositories, include_forks),
    )

    profile = DeveloperProfile(user=user, repositories=repositories)
    logger.info(
        f"Built profile for {user.username}: {len(repositories)} repositories, "
        f"languages={list(profile.language_stats)}"
    )
    return profile
