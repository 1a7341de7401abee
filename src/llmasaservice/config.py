"""Configuration: frozen ServiceConfig plus an ambient context for sessions."""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass
import os
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from dotenv import load_dotenv

from llmasaservice._http import DEFAULT_URL
from llmasaservice.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterator

load_dotenv()

_PROJECT_ID_ENV = "LLMASASERVICE_PROJECT_ID"
_URL_ENV = "LLMASASERVICE_URL"


@dataclass(frozen=True)
class Customer:
    """The end customer a call is made on behalf of."""

    customer_id: str
    customer_name: str | None = None
    customer_user_id: str | None = None
    customer_user_email: str | None = None

    def __post_init__(self) -> None:
        """Reject an empty customer id early."""
        if not isinstance(self.customer_id, str) or not self.customer_id.strip():
            raise ConfigurationError(
                "customer_id must be a non-empty string",
                hint="Pass Customer(customer_id='acme') or omit the customer.",
            )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Customer:
        """Build a Customer from a plain dict such as ``{"customer_id": ...}``."""
        if "customer_id" not in raw:
            raise ConfigurationError(
                "customer mapping is missing 'customer_id'",
                hint="Pass {'customer_id': 'acme', 'customer_name': 'Acme'}.",
            )
        known = {k: raw[k] for k in cls.__dataclass_fields__ if k in raw}
        return cls(**known)

    def to_wire(self) -> dict[str, str]:
        """Return the descriptor sent to the service, without unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ServiceConfig:
    """Immutable, per-session configuration for calls to the service.

    ``project_id`` and ``url`` are auto-resolved from the environment when
    left as *None*.

    Example:
        config = ServiceConfig(project_id="my-project")
        # url defaults to https://chat.llmasaservice.io/
    """

    #: Auto-resolved from ``LLMASASERVICE_PROJECT_ID`` when *None*.
    project_id: str | None = None
    #: *None* means the service uses the project id as the tenant key.
    customer: Customer | None = None
    #: Auto-resolved from ``LLMASASERVICE_URL``, then the production endpoint.
    url: str | None = None
    agent_id: str | None = None
    tools: list[dict[str, Any]] | None = None
    #: Default conversation for calls that do not name one.
    conversation_id: str | None = None

    def __post_init__(self) -> None:
        """Auto-resolve environment defaults and validate configuration."""
        if self.project_id is None:
            object.__setattr__(self, "project_id", os.environ.get(_PROJECT_ID_ENV))

        if self.url is None:
            object.__setattr__(self, "url", os.environ.get(_URL_ENV) or DEFAULT_URL)

        parsed = urlparse(str(self.url))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"url must be an absolute http(s) URL, got {self.url!r}",
                hint=f"Omit url to use {DEFAULT_URL}.",
            )

        if isinstance(self.customer, Mapping):
            object.__setattr__(self, "customer", Customer.from_mapping(self.customer))
        elif self.customer is not None and not isinstance(self.customer, Customer):
            raise ConfigurationError(
                f"customer must be a Customer, got {type(self.customer).__name__}",
                hint="Pass Customer(customer_id='acme').",
            )

        if self.tools is not None and (
            not isinstance(self.tools, list)
            or not all(isinstance(t, dict) for t in self.tools)
        ):
            raise ConfigurationError(
                "tools must be a list of dicts",
                hint="Pass tools=[{'name': 'lookup', ...}].",
            )


_active_service: ContextVar[ServiceConfig | None] = ContextVar(
    "llmasaservice_config", default=None
)


@contextmanager
def llm_service(
    config: ServiceConfig | None = None, **fields: Any
) -> Iterator[ServiceConfig]:
    """Make *config* the ambient configuration for sessions created inside.

    Either pass a ready ``ServiceConfig`` or its fields as keywords.

    Example:
        with llm_service(project_id="my-project"):
            session = LLMSession()
    """
    if config is None:
        config = ServiceConfig(**fields)
    elif fields:
        raise ConfigurationError(
            "pass either a ServiceConfig or keyword fields, not both",
            hint="Use llm_service(config) or llm_service(project_id=...).",
        )
    token = _active_service.set(config)
    try:
        yield config
    finally:
        _active_service.reset(token)


def current_service() -> ServiceConfig | None:
    """Return the ambient configuration, if any."""
    return _active_service.get()


def resolve_config(explicit: ServiceConfig | None = None) -> ServiceConfig:
    """Pick the configuration for a new session.

    Precedence: ambient context, then *explicit*. With neither available the
    session cannot be built.
    """
    ambient = current_service()
    if ambient is not None:
        return ambient
    if explicit is not None:
        return explicit
    raise ConfigurationError(
        "No service configuration available",
        hint=(
            "Create the session inside `with llm_service(...)` or pass "
            "LLMSession(ServiceConfig(project_id=...))."
        ),
    )
