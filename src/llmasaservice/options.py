"""Per-call options for ``LLMSession.send()``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from llmasaservice.abort import AbortHandle
from llmasaservice.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    TextCallback = Callable[[str], Awaitable[None] | None]


@dataclass(frozen=True)
class SendOptions:
    """Everything about a call except the prompt.

    Built fresh for each call; ``abort`` defaults to a new handle so each call
    is independently cancellable.
    """

    #: History/context turns, e.g. ``[{"role": "system", "content": "..."}]``.
    messages: list[dict[str, str]] = field(default_factory=list)
    #: Auxiliary key/value items the service can substitute into prompts.
    data: list[dict[str, Any]] = field(default_factory=list)
    #: Publish the response after every chunk instead of once at the end.
    stream: bool = True
    allow_caching: bool = True
    #: Explicit service id; *None* lets the server load-balance.
    service: str | None = None
    conversation: str | None = None
    abort: AbortHandle = field(default_factory=AbortHandle)
    #: Called once with the accumulated text, whatever the outcome.
    on_complete: TextCallback | None = None
    #: Called with the error text when the call fails.
    on_error: TextCallback | None = None

    def __post_init__(self) -> None:
        """Validate option shapes early for clear errors."""
        if not isinstance(self.messages, list):
            raise ConfigurationError(
                "messages must be a list of role/content dicts",
                hint="Pass messages=[{'role': 'user', 'content': '...'}].",
            )
        for item in self.messages:
            if (
                not isinstance(item, dict)
                or not isinstance(item.get("role"), str)
                or not isinstance(item.get("content"), str)
            ):
                raise ConfigurationError(
                    "messages items must be dicts with string 'role' and 'content'",
                    hint="Each item looks like {'role': 'assistant', 'content': 'Hi'}.",
                )

        if not isinstance(self.data, list):
            raise ConfigurationError(
                "data must be a list of key/value dicts",
                hint="Pass data=[{'key': 'name', 'data': 'Ada'}].",
            )
        for item in self.data:
            if not isinstance(item, dict) or not isinstance(item.get("key"), str):
                raise ConfigurationError(
                    "data items must be dicts with a string 'key'",
                    hint="Each item looks like {'key': 'name', 'data': 'Ada'}.",
                )

        for name in ("service", "conversation"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"{name} must be a string or None")

        if not isinstance(self.abort, AbortHandle):
            raise ConfigurationError(
                f"abort must be an AbortHandle, got {type(self.abort).__name__}",
                hint="Create one with AbortHandle() and keep it to call stop().",
            )

        for name in ("on_complete", "on_error"):
            cb = getattr(self, name)
            if cb is not None and not callable(cb):
                raise ConfigurationError(f"{name} must be callable")
