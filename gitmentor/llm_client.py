import logging

import openai

from gitmentor.config import (
    ANALYSIS_MODEL,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
)

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    pass


def create_openai_client() -> openai.AsyncOpenAI:
    """Create an AsyncOpenAI client. Safe to share across concurrent requests."""
    return openai.AsyncOpenAI(
        api_key=OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL,
    )


async def complete(
    system_prompt: str,
    user_prompt: str,
    client: openai.AsyncOpenAI,
    model: str = ANALYSIS_MODEL,
) -> str:
    """Run one chat completion and return its trimmed, non-empty text."""
    logger.debug(f"LLM call, model={model}")
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=LLM_TEMPERATURE,
        )
    except openai.OpenAIError as exc:
        raise CompletionError(f"LLM API error: {exc}") from exc

    usage = response.usage
    if usage:
        logger.debug(
            f"LLM token usage, model={model}: "
            f"prompt={usage.prompt_tokens}, completion={usage.completion_tokens}, "
            f"total={usage.total_tokens}"
        )

    if not response.choices:
        raise CompletionError("LLM returned no choices")

    content = (response.choices[0].message.content or "").strip()
    if not content:
        raise CompletionError("LLM returned empty content")
    return content
