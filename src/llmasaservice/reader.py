"""Chunk reader over a streamed HTTP response body."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

log = logging.getLogger(__name__)


class ByteReader:
    """Pull-based reader for one response body.

    ``read()`` returns the next chunk, or *None* once the body is exhausted.
    ``cancel()`` closes the response and hands the connection back to the
    pool; it is safe to call any number of times.
    """

    def __init__(self, response: httpx.Response, *, call_id: str = "") -> None:
        self._response = response
        self._chunks: AsyncIterator[bytes] = response.aiter_bytes()
        self._done = False
        self.call_id = call_id

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def closed(self) -> bool:
        """Whether the underlying response has been released."""
        return self._response.is_closed

    async def read(self) -> bytes | None:
        """Return the next chunk, or *None* at end-of-stream."""
        if self._done or self._response.is_closed:
            return None
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            self._done = True
            return None

    async def cancel(self) -> None:
        """Stop reading and release the connection."""
        self._done = True
        if not self._response.is_closed:
            await self._response.aclose()
            log.debug("Released response body for call %r", self.call_id)

    def __repr__(self) -> str:
        return f"ByteReader(call_id={self.call_id!r}, closed={self.closed})"
