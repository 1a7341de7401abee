"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: session tests share one scripted fake
service instead of growing one-off transports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import TYPE_CHECKING, Any

import httpx

from llmasaservice.session import LLMSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from llmasaservice.config import ServiceConfig


@dataclass
class FakeService:
    """Scripted stand-in for the chat endpoint, served via ``httpx.MockTransport``.

    The body is streamed chunk by chunk. ``before_chunk`` (if set) runs just
    before chunk *i* is yielded, which lets tests abort mid-stream.
    """

    chunks: list[bytes | str] = field(default_factory=list)
    status: int = 200
    call_id: str | None = "call-123"
    raise_on_connect: Exception | None = None
    raise_after: tuple[int, Exception] | None = None
    before_chunk: Callable[[int], None] | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def session(self, config: ServiceConfig | None = None) -> LLMSession:
        return LLMSession(config, client=self.client())

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        if self.raise_on_connect is not None:
            raise self.raise_on_connect
        headers = {"x-callId": self.call_id} if self.call_id is not None else {}
        if self.status >= 400:
            return httpx.Response(self.status, headers=headers, text="unavailable")
        return httpx.Response(self.status, headers=headers, content=self._body())

    async def _body(self) -> AsyncIterator[bytes]:
        for i, chunk in enumerate(self.chunks):
            if self.raise_after is not None and self.raise_after[0] == i:
                raise self.raise_after[1]
            if self.before_chunk is not None:
                self.before_chunk(i)
            yield chunk.encode() if isinstance(chunk, str) else chunk
        if self.raise_after is not None and self.raise_after[0] == len(self.chunks):
            raise self.raise_after[1]


class Recorder:
    """Callable that records every text it is called with."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, text: str) -> None:
        self.calls.append(text)
