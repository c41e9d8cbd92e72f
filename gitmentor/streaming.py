import asyncio
import json
import logging
from typing import AsyncIterator

import openai

from gitmentor.config import ENDPOINT_TIMEOUT
from gitmentor.orchestrator import SectionAnalyzer, run_analysis
from gitmentor.schemas import DeveloperProfile, Section, SectionUpdate

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = (
    "Analysis is taking longer than usual. Please try again later "
    "or analyze a profile with fewer repositories."
)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_event(payload: dict) -> str:
    """Frame one payload as a server-sent event."""
    return f"data: {json.dumps(payload)}\n\n"


async def stream_analysis(
    profile: DeveloperProfile,
    client: openai.AsyncOpenAI,
    timeout: float = ENDPOINT_TIMEOUT,
    analyzers: dict[Section, SectionAnalyzer] | None = None,
) -> AsyncIterator[str]:
    """Relay section updates as events, then a final ``complete`` or ``error`` event."""
    username = profile.user.username
    queue: asyncio.Queue[SectionUpdate] = asyncio.Queue()
    task = asyncio.create_task(
        run_analysis(profile, client, on_update=queue.put_nowait, analyzers=analyzers)
    )
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    try:
        while not (task.done() and queue.empty()):
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError

            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait(
                {getter, task}, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            if getter in done:
                update = getter.result()
                logger.info(f"Streaming section {update.section.value} for {username}")
                yield format_event(update.model_dump(mode="json", by_alias=True))
                continue

            getter.cancel()
            if not done:
                raise asyncio.TimeoutError

        report = task.result()
    except asyncio.TimeoutError:
        logger.warning(f"Analysis stream timed out after {timeout}s for {username}")
        yield format_event({"error": TIMEOUT_MESSAGE})
        return
    except Exception as exc:
        logger.error(f"Analysis failed for {username}: {exc}", exc_info=True)
        yield format_event({"error": f"Failed to analyze developer profile: {exc}"})
        return
    finally:
        if not task.done():
            task.cancel()

    yield format_event({
        "complete": True,
        "analysis": report.model_dump(mode="json", by_alias=True),
    })
