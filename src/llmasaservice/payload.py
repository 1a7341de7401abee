"""Wire payload for a call: what the service receives as the POST body."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from llmasaservice.config import ServiceConfig
    from llmasaservice.options import SendOptions

# Keys the service expects even when empty; everything else is omitted if unset.
_NULLABLE_KEYS = frozenset({"serviceId", "agentId"})


class CallPayload(BaseModel):
    """JSON body of a call, with the service's camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_id: str = Field("", alias="projectId")
    service_id: str | None = Field(None, alias="serviceId")
    agent_id: str | None = Field(None, alias="agentId")
    prompt: str
    messages: list[dict[str, str]] = Field(default_factory=list)
    data: list[dict[str, Any]] = Field(default_factory=list)
    #: Empty when no customer is configured; the project id is the tenant then.
    customer: dict[str, str] = Field(default_factory=dict)
    allow_caching: bool = Field(True, alias="allowCaching")
    conversation_id: str | None = Field(None, alias="conversationId")
    tools: list[dict[str, Any]] | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the body as a dict, dropping unset optional keys."""
        dumped = self.model_dump(by_alias=True)
        return {
            k: v for k, v in dumped.items() if v is not None or k in _NULLABLE_KEYS
        }

    def encode(self) -> str:
        """Serialize the body to JSON text."""
        return json.dumps(self.to_wire())


def build_payload(
    prompt: str, options: SendOptions, config: ServiceConfig
) -> CallPayload:
    """Merge per-call options with session configuration."""
    return CallPayload(
        project_id=config.project_id or "",
        service_id=options.service,
        agent_id=config.agent_id,
        prompt=prompt,
        messages=list(options.messages),
        data=list(options.data),
        customer=config.customer.to_wire() if config.customer else {},
        allow_caching=options.allow_caching,
        conversation_id=options.conversation or config.conversation_id,
        tools=config.tools,
    )
