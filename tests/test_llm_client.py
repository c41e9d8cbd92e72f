"""Tests for the completion client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from gitmentor.llm_client import CompletionError, complete


def _client_returning(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage = MagicMock(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.mark.asyncio
async def test_complete_returns_trimmed_text():
    client = _client_returning("  - Strong testing culture\n")
    assert await complete("system", "user", client) == "- Strong testing culture"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["messages"][1] == {"role": "user", "content": "user"}


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_complete_rejects_empty_content(content):
    with pytest.raises(CompletionError):
        await complete("system", "user", _client_returning(content))


@pytest.mark.asyncio
async def test_complete_wraps_api_errors():
    client = MagicMock()
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client.chat.completions.create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

    with pytest.raises(CompletionError):
        await complete("system", "user", client)
