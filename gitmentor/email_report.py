import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from markdown_it import MarkdownIt

from gitmentor.config import EMAIL_FROM, RESEND_API_BASE, RESEND_API_KEY, REQUEST_TIMEOUT
from gitmentor.schemas import AnalysisReport, DeveloperProfile

logger = logging.getLogger(__name__)

EMAIL_SUBJECT = "Your GitHub Profile Analysis"

_STYLE = """\
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px; }
h1, h2, h3 { color: #2c3e50; }
ul { padding-left: 20px; }
li { margin-bottom: 8px; }"""

_markdown = MarkdownIt("commonmark", {"html": False})


class EmailDeliveryError(Exception):
    pass


def _bullets(items: list[str]) -> str:
    # Continuation lines are indented so they stay inside their list item
    return "\n".join("- " + item.strip().replace("\n", "\n  ") for item in items)


def render_report_markdown(report: AnalysisReport, profile: DeveloperProfile) -> str:
    """Lay out a settled report as a markdown document."""
    if (
        report.strengths is None
        or report.areas_for_improvement is None
        or report.recommendations is None
        or report.technical_assessment is None
    ):
        raise ValueError("Analysis data is missing required fields")

    user = profile.user
    sections = [
        f"# GitHub Profile Analysis: {user.display_name or user.username}",
        f"## Technical Assessment\n\n{report.technical_assessment.strip()}",
        f"## Strengths\n\n{_bullets(report.strengths)}",
        f"## Areas for Improvement\n\n{_bullets(report.areas_for_improvement)}",
        f"## Recommendations\n\n{_bullets(report.recommendations)}",
    ]
    if report.profile_rating is not None:
        rating = report.profile_rating
        sections.append(f"## Profile Rating: {rating.score:.1f}/10\n\n{rating.explanation.strip()}")
    return "\n\n".join(sections) + "\n"


def render_report_html(report: AnalysisReport, profile: DeveloperProfile) -> str:
    """Render a settled report as a standalone HTML email body.

    Section text is treated as markdown; raw HTML in model output is escaped.
    """
    body = _markdown.render(render_report_markdown(report, profile))
    return f"<html>\n<head>\n<style>\n{_STYLE}\n</style>\n</head>\n<body>\n{body}</body>\n</html>"


@asynccontextmanager
async def create_email_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an httpx async client for the Resend email API."""
    async with httpx.AsyncClient(
        base_url=RESEND_API_BASE,
        headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
        timeout=REQUEST_TIMEOUT,
    ) as client:
        yield client


async def send_report_email(
    to: str, html_body: str, subject: str, client: httpx.AsyncClient
) -> str:
    """Send one email and return the provider's message id."""
    try:
        response = await client.post(
            "/emails",
            json={"from": EMAIL_FROM, "to": [to], "subject": subject, "html": html_body},
        )
    except httpx.RequestError as exc:
        raise EmailDeliveryError(f"Network error sending email: {exc}") from exc

    if response.status_code >= 300:
        raise EmailDeliveryError(
            f"Email provider returned {response.status_code}: {response.text[:200]}"
        )

    message_id = response.json().get("id", "")
    logger.info(f"Email sent to {to}, id={message_id}")
    return message_id
