"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, automatic API test
skipping, and the fake service used by session tests.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from llmasaservice.config import ServiceConfig
from tests.helpers import FakeService

TEST_URL = "https://chat.test.local/"
TEST_PROJECT_ID = "proj-test"


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_service_env(request, monkeypatch):
    """Clear LLMASASERVICE_* env vars so tests never hit a configured endpoint.

    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith("LLMASASERVICE_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def service_config() -> ServiceConfig:
    """A minimal configuration pointing at the fake service."""
    return ServiceConfig(project_id=TEST_PROJECT_ID, url=TEST_URL)


@pytest.fixture
def fake_service() -> FakeService:
    """A scripted fake service; set ``.chunks`` or ``.status`` per test."""
    return FakeService()
