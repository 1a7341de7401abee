"""Real service integration tests.

These tests call the live endpoint and are intentionally compact:
- ENABLE_API_TESTS=1 is required to run any API tests
- LLMASASERVICE_PROJECT_ID must name a project with a working service
"""

from __future__ import annotations

import os

import pytest

from llmasaservice import LLMSession, ServiceConfig

pytestmark = pytest.mark.api


@pytest.fixture
def live_config() -> ServiceConfig:
    """Return configuration for the live service or skip."""
    if not os.getenv("LLMASASERVICE_PROJECT_ID"):
        pytest.skip("LLMASASERVICE_PROJECT_ID not set")
    return ServiceConfig()


@pytest.mark.asyncio
async def test_live_non_streaming_call_returns_text(live_config: ServiceConfig) -> None:
    async with LLMSession(live_config) as session:
        text = await session.send("Reply with the single word: pong", stream=False)

    assert session.error == ""
    assert isinstance(text, str)
    assert text.strip()


@pytest.mark.asyncio
async def test_live_streaming_call_fills_response(live_config: ServiceConfig) -> None:
    async with LLMSession(live_config) as session:
        await session.send("Count from one to five.")
        await session.wait()

    assert session.error == ""
    assert session.idle is True
    assert session.response.strip()
