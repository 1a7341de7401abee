"""Stream consumption: turn a response body into published text.

One call runs one read loop with the following transitions:

- ``READING -> ABORTED`` when the abort handle fires (checked before each
  read, or raised from a guarded read as ``CallAborted``).
- ``READING -> READING`` on each chunk: decode, append, publish when
  streaming.
- ``READING -> ERRORED`` when the accumulated text starts with the error
  sentinel, or a read raises anything other than ``CallAborted``.
- ``READING -> COMPLETED`` at end-of-stream.

The sentinel check runs before the end-of-stream check, so a body that ends
with the sentinel still completing it is an error. Finalization runs exactly
once: idle is restored, errors are recorded, the reader is released and
``on_complete`` always fires.
"""

from __future__ import annotations

import asyncio
import codecs
from dataclasses import dataclass
import enum
import inspect
import logging
from typing import TYPE_CHECKING

from llmasaservice._http import ERROR_SENTINEL
from llmasaservice.abort import CallAborted
from llmasaservice.errors import StreamError

if TYPE_CHECKING:
    from llmasaservice.abort import AbortHandle
    from llmasaservice.options import TextCallback
    from llmasaservice.reader import ByteReader
    from llmasaservice.state import CallState

log = logging.getLogger(__name__)


class StreamStatus(enum.Enum):
    READING = "reading"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"


@dataclass(frozen=True)
class StreamOutcome:
    """How a read loop ended."""

    text: str
    status: StreamStatus
    error: StreamError | None = None


def sentinel_message(text: str) -> str | None:
    """Return the server error message if *text* carries the sentinel."""
    if not text.startswith(ERROR_SENTINEL):
        return None
    return text[len(ERROR_SENTINEL) :].lstrip()


async def invoke_callback(callback: TextCallback | None, text: str) -> None:
    """Call a user callback, awaiting it when it is a coroutine function."""
    if callback is None:
        return
    result = callback(text)
    if inspect.isawaitable(result):
        await result


class StreamConsumer:
    """Drives the read loop for one call and finalizes its state."""

    def __init__(
        self,
        reader: ByteReader,
        *,
        state: CallState,
        token: int,
        abort: AbortHandle,
        stream: bool = True,
        on_complete: TextCallback | None = None,
        on_error: TextCallback | None = None,
    ) -> None:
        self.reader = reader
        self.state = state
        self.token = token
        self.abort = abort
        self.stream = stream
        self.on_complete = on_complete
        self.on_error = on_error
        self.status = StreamStatus.READING
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._text = ""
        self._finalized = False

    @property
    def text(self) -> str:
        """Text accumulated so far."""
        return self._text

    async def run(self) -> StreamOutcome:
        """Read until a terminal state, finalize, and report the outcome."""
        error: StreamError | None = None
        try:
            error = await self._read_loop()
        finally:
            if self.status is StreamStatus.READING:
                # Interrupted by an exception, e.g. our own task being cancelled.
                self.status = StreamStatus.ABORTED
                await self._release()
                if self.state.is_current(self.token):
                    self.state.mark_idle()
        await self._finalize(error)
        return StreamOutcome(text=self._text, status=self.status, error=error)

    async def _read_loop(self) -> StreamError | None:
        while True:
            if self.abort.aborted:
                self.status = StreamStatus.ABORTED
                return None

            try:
                chunk = await self.abort.guard(self.reader.read())
            except CallAborted:
                self.status = StreamStatus.ABORTED
                return None
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.status = StreamStatus.ERRORED
                return StreamError(
                    f"Reading error {exc}",
                    phase="read",
                    call_id=self.reader.call_id,
                )

            at_end = chunk is None
            if at_end:
                self._text += self._decoder.decode(b"", final=True)
            else:
                self._text += self._decoder.decode(chunk)

            message = sentinel_message(self._text)
            if message is not None:
                self.status = StreamStatus.ERRORED
                return StreamError(message, phase="server", call_id=self.reader.call_id)

            if self.stream:
                self.state.publish(self.token, response=self._text)

            if at_end:
                self.status = StreamStatus.COMPLETED
                return None

    async def _finalize(self, error: StreamError | None) -> None:
        if self._finalized:
            return
        self._finalized = True

        owner = self.state.is_current(self.token)
        if not self.stream:
            self.state.publish(self.token, response=self._text)

        await self._release()

        if error is not None:
            message = str(error)
            log.warning("Call %r failed: %s", self.reader.call_id, message)
            self.state.publish(self.token, error=message, exception=error, idle=True)
        else:
            self.state.publish(self.token, idle=True)
            log.debug(
                "Call %r finished (%s, %d chars)",
                self.reader.call_id,
                self.status.value,
                len(self._text),
            )
        if not owner:
            log.debug("Call %r was superseded; state left untouched", self.reader.call_id)

        try:
            if error is not None:
                await invoke_callback(self.on_error, str(error))
        finally:
            await invoke_callback(self.on_complete, self._text)

    async def _release(self) -> None:
        try:
            await self.reader.cancel()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Release failures should never mask the call's own outcome.
            log.warning("Releasing reader for call %r failed: %s", self.reader.call_id, exc)
