"""Tests for the event-stream transport."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gitmentor.schemas import DeveloperProfile, GitHubUser, ProfileRating, Section
from gitmentor.streaming import TIMEOUT_MESSAGE, format_event, stream_analysis


def _profile() -> DeveloperProfile:
    return DeveloperProfile(user=GitHubUser(username="octocat"))


def _analyzers() -> dict[Section, AsyncMock]:
    return {
        Section.STRENGTHS: AsyncMock(return_value=["Testing"]),
        Section.AREAS_FOR_IMPROVEMENT: AsyncMock(side_effect=RuntimeError("boom")),
        Section.RECOMMENDATIONS: AsyncMock(return_value=["Blog more"]),
        Section.TECHNICAL_ASSESSMENT: AsyncMock(return_value="Strong."),
        Section.PROFILE_RATING: AsyncMock(return_value=ProfileRating(score=8.0, explanation="Good.")),
    }


def _decode(events: list[str]) -> list[dict]:
    payloads = []
    for event in events:
        assert event.startswith("data: ")
        assert event.endswith("\n\n")
        payloads.append(json.loads(event[len("data: "):]))
    return payloads


async def _collect(stream) -> list[str]:
    return [event async for event in stream]


def test_format_event_framing():
    assert format_event({"section": "strengths", "data": ["a"]}) == (
        'data: {"section": "strengths", "data": ["a"]}\n\n'
    )


@pytest.mark.asyncio
async def test_stream_emits_sections_then_complete():
    events = _decode(await _collect(stream_analysis(_profile(), MagicMock(), analyzers=_analyzers())))

    assert len(events) == 6
    assert {e["section"] for e in events[:5]} == {s.value for s in Section}
    final = events[-1]
    assert final["complete"] is True
    assert final["analysis"]["strengths"] == ["Testing"]
    assert final["analysis"]["areasForImprovement"] == ["Failed to analyze areas for improvement"]
    assert final["analysis"]["profileRating"] == {"score": 8.0, "explanation": "Good."}


@pytest.mark.asyncio
async def test_stream_times_out_with_error_event():
    async def _stall(*args):
        await asyncio.sleep(10)

    analyzers = _analyzers()
    analyzers[Section.TECHNICAL_ASSESSMENT] = _stall

    events = _decode(await _collect(
        stream_analysis(_profile(), MagicMock(), timeout=0.1, analyzers=analyzers)
    ))

    assert events[-1] == {"error": TIMEOUT_MESSAGE}
    assert all("complete" not in e for e in events)
    assert len(events) == 5


@pytest.mark.asyncio
@patch("gitmentor.orchestrator.format_profile", side_effect=ValueError("malformed profile"))
async def test_stream_reports_preparation_failure(mock_format):
    events = _decode(await _collect(stream_analysis(_profile(), MagicMock(), analyzers=_analyzers())))

    assert len(events) == 1
    assert "malformed profile" in events[0]["error"]
