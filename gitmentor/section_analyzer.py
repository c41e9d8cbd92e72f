"""One prompt/parse routine per report section.

Every analyzer has the same shape::

    await analyze(profile, language_summary, repository_summary, client)

and raises ``CompletionError`` when the model call fails or comes back empty,
``ParseError`` when the text does not have the section's expected structure.
"""

import logging
import re

import openai

from gitmentor.llm_client import complete
from gitmentor.prompts import (
    ASSESSMENT_SYSTEM_PROMPT,
    ASSESSMENT_USER_TEMPLATE,
    IMPROVEMENT_SYSTEM_PROMPT,
    IMPROVEMENT_USER_TEMPLATE,
    PROFILE_TEMPLATE,
    RATING_SYSTEM_PROMPT,
    RATING_USER_TEMPLATE,
    RECOMMENDATIONS_SYSTEM_PROMPT,
    RECOMMENDATIONS_USER_TEMPLATE,
    STRENGTHS_SYSTEM_PROMPT,
    STRENGTHS_USER_TEMPLATE,
)
from gitmentor.schemas import DeveloperProfile, ProfileRating

logger = logging.getLogger(__name__)

_BULLET_RE = re.compile(r"^\s*(?:[-*•+]\s+|\d+[.)]\s+)")

# Score line, e.g. "Rating: 7.5/10", "**Overall Rating:** 7.5/10" or "Final Rating: 7/10"
_RATING_RE = re.compile(
    r"^(?P<label>[^\n]*?)\brating[*_]*\s*:\s*[*_]*\s*(?P<score>\d+(?:\.\d+)?)\s*/\s*10[^\n]*$",
    re.IGNORECASE | re.MULTILINE,
)


class ParseError(Exception):
    pass


def render_profile(profile: DeveloperProfile, language_summary: str, repository_summary: str) -> str:
    user = profile.user
    created_at = user.account_created_at.isoformat() if user.account_created_at else "Unknown"
    return PROFILE_TEMPLATE.format(
        name=user.display_name or user.username,
        bio=user.bio or "No bio",
        public_repos=user.public_repo_count,
        followers=user.follower_count,
        following=user.following_count,
        created_at=created_at,
        language_summary=language_summary,
        repository_summary=repository_summary,
    )


def parse_bullet_list(content: str) -> list[str]:
    """Split model output into items, stripping bullet and numbering markers."""
    items = [_BULLET_RE.sub("", line).strip() for line in content.splitlines()]
    items = [item for item in items if item]
    if not items:
        raise ParseError("Expected a bullet list, got no items")
    return items


def _pick_overall(matches: list[re.Match]) -> re.Match:
    for match in matches:
        if "overall" in match.group("label").lower():
            return match
    for match in matches:
        if not re.search(r"\w", match.group("label")):
            return match
    return matches[-1]


def parse_rating(content: str) -> ProfileRating:
    """Locate the overall "Rating: X/10" line; everything else is the explanation.

    When several lines carry a rating, one labelled "overall" wins, then a bare
    "Rating:" label, then the last one.
    """
    matches = list(_RATING_RE.finditer(content))
    if not matches:
        raise ParseError("No overall 'Rating: X/10' found in model output")
    match = _pick_overall(matches)

    score = round(float(match.group("score")), 1)
    if score > 10:
        raise ParseError(f"Overall rating {score} is outside 0-10")

    parts = [content[:match.start()].strip(), content[match.end():].strip()]
    explanation = "\n\n".join(part for part in parts if part)
    if not explanation:
        raise ParseError("Rating has no explanation")

    return ProfileRating(score=score, explanation=explanation)


async def _ask(
    system_prompt: str,
    user_template: str,
    profile: DeveloperProfile,
    language_summary: str,
    repository_summary: str,
    client: openai.AsyncOpenAI,
) -> str:
    prompt = user_template.format(
        profile=render_profile(profile, language_summary, repository_summary)
    )
    return await complete(system_prompt, prompt, client)


async def analyze_strengths(
    profile: DeveloperProfile, language_summary: str, repository_summary: str, client: openai.AsyncOpenAI
) -> list[str]:
    content = await _ask(
        STRENGTHS_SYSTEM_PROMPT, STRENGTHS_USER_TEMPLATE,
        profile, language_summary, repository_summary, client,
    )
    return parse_bullet_list(content)


async def analyze_areas_for_improvement(
    profile: DeveloperProfile, language_summary: str, repository_summary: str, client: openai.AsyncOpenAI
) -> list[str]:
    content = await _ask(
        IMPROVEMENT_SYSTEM_PROMPT, IMPROVEMENT_USER_TEMPLATE,
        profile, language_summary, repository_summary, client,
    )
    return parse_bullet_list(content)


async def analyze_recommendations(
    profile: DeveloperProfile, language_summary: str, repository_summary: str, client: openai.AsyncOpenAI
) -> list[str]:
    content = await _ask(
        RECOMMENDATIONS_SYSTEM_PROMPT, RECOMMENDATIONS_USER_TEMPLATE,
        profile, language_summary, repository_summary, client,
    )
    return parse_bullet_list(content)


async def analyze_technical_assessment(
    profile: DeveloperProfile, language_summary: str, repository_summary: str, client: openai.AsyncOpenAI
) -> str:
    return await _ask(
        ASSESSMENT_SYSTEM_PROMPT, ASSESSMENT_USER_TEMPLATE,
        profile, language_summary, repository_summary, client,
    )


async def analyze_profile_rating(
    profile: DeveloperProfile, language_summary: str, repository_summary: str, client: openai.AsyncOpenAI
) -> ProfileRating:
    content = await _ask(
        RATING_SYSTEM_PROMPT, RATING_USER_TEMPLATE,
        profile, language_summary, repository_summary, client,
    )
    rating = parse_rating(content)
    logger.debug(f"Parsed rating {rating.score}/10 for {profile.user.username}")
    return rating
