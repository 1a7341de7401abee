"""Cooperative cancellation for a single call.

The stream loop polls ``AbortHandle.aborted`` between chunks, and anything
awaited through ``guard()`` is cancelled the moment ``abort()`` is called so a
stalled POST or chunk read does not keep the call alive.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


class CallAborted(Exception):  # noqa: N818
    """Raised when an awaited step was interrupted by ``AbortHandle.abort()``.

    Cancellation is not an error: sessions never report this through
    ``on_error``.
    """


class AbortHandle:
    """Cancellation signal shared between a caller and one call.

    Must be used from the event loop running the call.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._pending: set[asyncio.Future[Any]] = set()

    @property
    def aborted(self) -> bool:
        """Whether ``abort()`` has been called."""
        return self._aborted

    def abort(self) -> None:
        """Trigger the signal and cancel any guarded await. Idempotent."""
        if self._aborted:
            return
        self._aborted = True
        for fut in list(self._pending):
            fut.cancel()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable*, converting an abort into ``CallAborted``.

        Cancellation of the caller's own task is propagated unchanged.
        """
        if self._aborted:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CallAborted("call aborted before the step started")

        fut = asyncio.ensure_future(awaitable)
        self._pending.add(fut)
        try:
            return await fut
        except asyncio.CancelledError:
            if self._aborted and fut.cancelled():
                raise CallAborted("call aborted while waiting") from None
            raise
        finally:
            self._pending.discard(fut)

    def __repr__(self) -> str:
        return f"AbortHandle(aborted={self._aborted})"
