import logging
from typing import NamedTuple

from gitmentor.schemas import DeveloperProfile, Repository

logger = logging.getLogger(__name__)

LANGUAGES_NOT_AVAILABLE = "Language statistics not available"
NO_DESCRIPTION = "No description"
NOT_SPECIFIED = "Not specified"
NO_TOPICS = "None"
REPOSITORY_SEPARATOR = "\n---\n"


class PromptSummaries(NamedTuple):
    language_summary: str
    repository_summary: str


def _percentages(byte_counts: dict[str, int]) -> str | None:
    total = sum(byte_counts.values())
    if total <= 0:
        return None
    return ", ".join(
        f"{language}: {size / total * 100:.1f}%" for language, size in byte_counts.items()
    )


def format_language_summary(profile: DeveloperProfile) -> str:
    """Overall language share, in insertion order, one decimal place."""
    return _percentages(profile.language_stats) or LANGUAGES_NOT_AVAILABLE


def _fork_annotation(repo: Repository) -> str:
    if not repo.is_fork:
        return "Forked: No"
    parts = ["Forked: Yes"]
    if repo.fork_origin:
        parts.append(f"from {repo.fork_origin.full_name}")
    if repo.fork_contribution and repo.fork_contribution.has_commits:
        parts.append(f"Contributions: {repo.fork_contribution.commit_count} commits")
    return ", ".join(parts)


def format_repository(repo: Repository) -> str:
    languages = _percentages(repo.language_bytes) or repo.primary_language or NOT_SPECIFIED
    lines = [
        f"Repository: {repo.name}",
        f"Description: {repo.description or NO_DESCRIPTION}",
        f"Main Language: {repo.primary_language or NOT_SPECIFIED}",
        f"Languages: {languages}",
        f"Stars: {repo.star_count}",
        f"Forks: {repo.fork_count}",
        f"Topics: {', '.join(repo.topics) or NO_TOPICS}",
        _fork_annotation(repo),
    ]
    return "\n".join(lines)


def format_repository_summary(profile: DeveloperProfile) -> str:
    return REPOSITORY_SEPARATOR.join(format_repository(repo) for repo in profile.repositories)


def format_profile(profile: DeveloperProfile) -> PromptSummaries:
    """Derive the text summaries shared by every analysis prompt."""
    summaries = PromptSummaries(
        language_summary=format_language_summary(profile),
        repository_summary=format_repository_summary(profile),
    )
    logger.debug(
        f"Formatted profile {profile.user.username}: "
        f"~{len(summaries.repository_summary) // 3} tokens of repository summary"
    )
    return summaries
