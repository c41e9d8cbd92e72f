import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable

import openai

from gitmentor.overrides import reserved_report
from gitmentor.prompt_formatter import format_profile
from gitmentor.schemas import (
    AnalysisReport,
    DeveloperProfile,
    ProfileRating,
    Section,
    SectionData,
    SectionUpdate,
)
from gitmentor.section_analyzer import (
    analyze_areas_for_improvement,
    analyze_profile_rating,
    analyze_recommendations,
    analyze_strengths,
    analyze_technical_assessment,
)

logger = logging.getLogger(__name__)

SectionAnalyzer = Callable[[DeveloperProfile, str, str, openai.AsyncOpenAI], Awaitable[SectionData]]
UpdateCallback = Callable[[SectionUpdate], Awaitable[None] | None]

SECTION_ANALYZERS: dict[Section, SectionAnalyzer] = {
    Section.STRENGTHS: analyze_strengths,
    Section.AREAS_FOR_IMPROVEMENT: analyze_areas_for_improvement,
    Section.RECOMMENDATIONS: analyze_recommendations,
    Section.TECHNICAL_ASSESSMENT: analyze_technical_assessment,
    Section.PROFILE_RATING: analyze_profile_rating,
}


def fallback_for(section: Section) -> SectionData:
    """Placeholder content used when a section's analysis fails."""
    if section is Section.STRENGTHS:
        return ["Failed to analyze strengths"]
    if section is Section.AREAS_FOR_IMPROVEMENT:
        return ["Failed to analyze areas for improvement"]
    if section is Section.RECOMMENDATIONS:
        return ["Failed to get recommendations"]
    if section is Section.TECHNICAL_ASSESSMENT:
        return "Failed to get technical assessment"
    return ProfileRating(score=0.0, explanation="Failed to generate profile rating")


async def _notify(on_update: UpdateCallback | None, update: SectionUpdate) -> None:
    if on_update is None:
        return
    try:
        result = on_update(update)
        if inspect.isawaitable(result):
            await result
    except Exception:
        # A broken listener must not stop the remaining sections from settling
        logger.exception(f"Update callback failed for section {update.section.value}")


async def _serve_reserved(
    sections: dict[Section, SectionData], on_update: UpdateCallback | None
) -> AnalysisReport:
    report = AnalysisReport()
    for section in Section:
        report.settle(section, sections[section])
        await _notify(on_update, SectionUpdate(section=section, data=report.get(section)))
    return report


async def run_analysis(
    profile: DeveloperProfile,
    client: openai.AsyncOpenAI,
    on_update: UpdateCallback | None = None,
    analyzers: dict[Section, SectionAnalyzer] | None = None,
) -> AnalysisReport:
    """Run every section analysis concurrently and return the settled report.

    ``on_update`` receives one ``SectionUpdate`` per section as each settles, in
    arrival order. A failing section is replaced by its fallback value and logged;
    once the sections are launched this coroutine does not raise.
    """
    username = profile.user.username
    analyzers = analyzers or SECTION_ANALYZERS

    sections = reserved_report(username)
    if sections is not None:
        logger.info(f"Serving reserved report for {username}")
        return await _serve_reserved(sections, on_update)

    start_time = time.monotonic()
    summaries = format_profile(profile)
    report = AnalysisReport()

    async def _run_section(section: Section, analyze: SectionAnalyzer) -> None:
        try:
            data = await analyze(
                profile, summaries.language_summary, summaries.repository_summary, client
            )
        except Exception as exc:
            logger.warning(f"Section {section.value} failed for {username}, using fallback: {exc}")
            report.settle(section, fallback_for(section), fallback=True)
        else:
            logger.info(f"Section {section.value} complete for {username}")
            report.settle(section, data)
        await _notify(on_update, SectionUpdate(section=section, data=report.get(section)))

    logger.info(f"Starting {len(analyzers)} section analyses for {username}")
    await asyncio.gather(*[_run_section(section, analyze) for section, analyze in analyzers.items()])

    elapsed = time.monotonic() - start_time
    logger.info(f"Analysis complete for {username} in {elapsed:.1f}s")
    return report
