from __future__ import annotations

import pytest

from llmasaservice.abort import CallAborted
from llmasaservice.errors import (
    APIError,
    ConfigurationError,
    LLMServiceError,
    StreamError,
    _walk_exception_chain,
)

pytestmark = pytest.mark.unit


def test_api_error_structured_metadata() -> None:
    err = APIError(
        "boom",
        hint="do this",
        retryable=True,
        status_code=503,
        phase="post",
        call_id="call-1",
    )

    assert str(err) == "boom"
    assert err.hint == "do this"
    assert err.retryable is True
    assert err.status_code == 503
    assert err.phase == "post"
    assert err.call_id == "call-1"


def test_api_error_defaults_to_none() -> None:
    err = APIError("fail")
    assert err.hint is None
    assert err.retryable is None
    assert err.status_code is None
    assert err.phase is None
    assert err.call_id is None


def test_subclass_hierarchy() -> None:
    """StreamError and ConfigurationError are catchable as LLMServiceError."""
    assert isinstance(StreamError("x"), APIError)
    assert isinstance(StreamError("x"), LLMServiceError)
    assert isinstance(ConfigurationError("x"), LLMServiceError)


def test_call_aborted_is_not_a_service_error() -> None:
    """Cancellation must never be mistaken for a failure."""
    assert not isinstance(CallAborted(), LLMServiceError)


def test_walk_exception_chain_follows_causes_without_looping() -> None:
    inner = ValueError("inner")
    outer = RuntimeError("outer")
    outer.__cause__ = inner
    inner.__context__ = outer  # cycle

    assert list(_walk_exception_chain(outer)) == [outer, inner]
