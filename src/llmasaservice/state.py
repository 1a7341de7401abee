"""Observable per-session call state."""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from llmasaservice.errors import APIError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallSnapshot:
    """Point-in-time copy of a session's call state."""

    response: str
    idle: bool
    error: str
    call_id: str
    #: Structured form of ``error``, when the last call failed.
    exception: APIError | None = None


class CallState:
    """Mutable state shared by the calls of one session.

    Each call takes a token from ``begin_call()``. Only the holder of the
    latest token may write, so a call superseded by a newer one finishes
    without clobbering what the newer call has published.
    """

    def __init__(self) -> None:
        self.response = ""
        self.idle = True
        self.error = ""
        self.call_id = ""
        self.exception: APIError | None = None
        self._tokens = itertools.count(1)
        self._current = 0
        self._listeners: list[Callable[[CallSnapshot], None]] = []

    def begin_call(self) -> int:
        """Claim the state for a new call and reset it."""
        self._current = next(self._tokens)
        self.response = ""
        self.idle = False
        self.error = ""
        self.exception = None
        self._notify()
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    def publish(self, token: int, **changes: object) -> bool:
        """Apply *changes* if *token* still owns the state.

        Returns whether the write happened.
        """
        if not self.is_current(token):
            log.debug("Dropping update from superseded call #%d", token)
            return False
        for name, value in changes.items():
            if name not in ("response", "idle", "error", "exception", "call_id"):
                raise AttributeError(f"CallState has no field {name!r}")
            setattr(self, name, value)
        self._notify()
        return True

    def set_response(self, text: str) -> None:
        """Overwrite the response text regardless of which call owns it."""
        self.response = text
        self._notify()

    def mark_idle(self) -> None:
        self.idle = True
        self._notify()

    def snapshot(self) -> CallSnapshot:
        return CallSnapshot(
            response=self.response,
            idle=self.idle,
            error=self.error,
            call_id=self.call_id,
            exception=self.exception,
        )

    def subscribe(self, listener: Callable[[CallSnapshot], None]) -> Callable[[], None]:
        """Call *listener* with a snapshot after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)
