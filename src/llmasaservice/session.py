"""LLMSession: build a call, POST it, and track its lifecycle."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from llmasaservice._http import CALL_ID_HEADER, CONTENT_TYPE, RETRYABLE_STATUS_CODES
from llmasaservice.abort import CallAborted
from llmasaservice.config import resolve_config
from llmasaservice.errors import APIError, ConfigurationError, _walk_exception_chain
from llmasaservice.options import SendOptions
from llmasaservice.payload import build_payload
from llmasaservice.reader import ByteReader
from llmasaservice.state import CallState
from llmasaservice.stream import StreamConsumer, invoke_callback

if TYPE_CHECKING:
    from types import TracebackType

    from llmasaservice.abort import AbortHandle
    from llmasaservice.config import ServiceConfig
    from llmasaservice.state import CallSnapshot

log = logging.getLogger(__name__)


class LLMSession:
    """One logical conversation surface with the service.

    A session holds the observable call state (``response``, ``idle``,
    ``error``, ``call_id``) and issues calls with ``send()``. Configuration
    comes from the ambient ``llm_service(...)`` context when there is one,
    otherwise from *config*.

    Example:
        async with LLMSession(ServiceConfig(project_id="p-1")) as session:
            text = await session.send("Hello", stream=False)
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = resolve_config(config)
        self._state = CallState()
        self._owns_client = client is None
        # The service streams for as long as generation takes; no read timeout.
        self._client = client if client is not None else httpx.AsyncClient(timeout=None)
        self._consumer_task: asyncio.Task[Any] | None = None

    # -- observable state --------------------------------------------------

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def response(self) -> str:
        return self._state.response

    @property
    def idle(self) -> bool:
        return self._state.idle

    @property
    def error(self) -> str:
        return self._state.error

    @property
    def call_id(self) -> str:
        """Correlation id of the latest call, for support requests."""
        return self._state.call_id

    @property
    def last_exception(self) -> APIError | None:
        """Structured error of the latest call (status code, retryable, phase)."""
        return self._state.exception

    def snapshot(self) -> CallSnapshot:
        return self._state.snapshot()

    def set_response(self, text: str) -> None:
        """Replace the visible response text, e.g. to clear it in a UI."""
        self._state.set_response(text)

    # -- calls -------------------------------------------------------------

    async def send(
        self,
        prompt: str,
        options: SendOptions | None = None,
        **fields: Any,
    ) -> ByteReader | str | None:
        """Send *prompt* to the service.

        Args:
            prompt: The prompt to send.
            options: Per-call options. Alternatively pass the ``SendOptions``
                fields as keywords (``messages=..., stream=False``).

        Returns:
            The final text when ``stream`` is False; the live ``ByteReader``
            when streaming (the text also accumulates in ``response``); *None*
            when the call failed before a body was available.

        Failures never raise: they land in ``error`` and ``on_error``.
        """
        if options is None:
            options = SendOptions(**fields)
        elif fields:
            raise ConfigurationError(
                "pass either options or keyword fields, not both",
                hint="Use send(prompt, SendOptions(...)) or send(prompt, stream=False).",
            )
        if not isinstance(prompt, str) or not prompt.strip():
            raise ConfigurationError(
                "prompt is empty or whitespace-only",
                hint="Each call needs a non-empty prompt.",
            )

        try:
            body = build_payload(prompt, options, self.config).encode()
        except (TypeError, ValueError) as exc:
            # pydantic's ValidationError is a ValueError.
            raise ConfigurationError(
                f"request body could not be built: {exc}",
                hint="messages, data and customer fields must hold JSON-serializable values.",
            ) from exc

        token = self._state.begin_call()
        log.debug(
            "Call #%d: POST %s (service=%r, stream=%s)",
            token,
            self.config.url,
            options.service,
            options.stream,
        )

        try:
            response = await options.abort.guard(self._post(body))
        except CallAborted:
            log.debug("Call #%d aborted before the response arrived", token)
            self._state.publish(token, idle=True)
            await invoke_callback(options.on_complete, "")
            return None
        except APIError as err:
            await self._fail(token, err, options)
            return None

        call_id = response.headers.get(CALL_ID_HEADER, "")
        self._state.publish(token, call_id=call_id)
        reader = ByteReader(response, call_id=call_id)
        consumer = StreamConsumer(
            reader,
            state=self._state,
            token=token,
            abort=options.abort,
            stream=options.stream,
            on_complete=options.on_complete,
            on_error=options.on_error,
        )

        if not options.stream:
            outcome = await consumer.run()
            return outcome.text

        task = asyncio.create_task(consumer.run(), name=f"llmasaservice-call-{token}")
        task.add_done_callback(_log_task_failure)
        self._consumer_task = task
        return reader

    def stop(self, handle: AbortHandle | None = None) -> None:
        """Abort the call using *handle* and mark the session idle right away.

        The background reader notices the abort and cleans up on its own.
        """
        if handle is not None:
            handle.abort()
        self._state.mark_idle()

    async def wait(self) -> None:
        """Wait for the latest streaming call's reader to finish."""
        task = self._consumer_task
        if task is not None:
            await asyncio.shield(task)

    async def _post(self, body: str) -> httpx.Response:
        try:
            request = self._client.build_request(
                "POST",
                str(self.config.url),
                headers={"Content-Type": CONTENT_TYPE},
                content=body,
            )
            response = await self._client.send(request, stream=True)
        except Exception as exc:
            # Any failure to get a response (closed client, socket errors)
            # is a connection problem for this call.
            raise APIError(
                "Error: Having trouble connecting to chat service. "
                f"({_describe(exc)})",
                phase="connect",
                retryable=isinstance(exc, (httpx.TimeoutException, httpx.TransportError)),
            ) from exc

        if not response.is_success:
            # The body is not read on failure; release the connection.
            await response.aclose()
            raise APIError(
                "Error: Network error for service. "
                f"({response.status_code} {response.reason_phrase})",
                phase="post",
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
                call_id=response.headers.get(CALL_ID_HEADER),
            )
        return response

    async def _fail(self, token: int, err: APIError, options: SendOptions) -> None:
        message = str(err)
        log.warning("Error in fetch. (%s)", message)
        self._state.publish(token, error=message, exception=err, idle=True)
        await invoke_callback(options.on_error, message)

    # -- lifecycle ---------------------------------------------------------

    async def aclose(self) -> None:
        """Close the HTTP client if this session created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> LLMSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"LLMSession(project_id={self.config.project_id!r}, "
            f"url={self.config.url!r}, idle={self.idle})"
        )


def _describe(exc: BaseException) -> str:
    """Return the first non-empty message along the exception chain."""
    for e in _walk_exception_chain(exc):
        text = str(e)
        if text:
            return text
    return type(exc).__name__


def _log_task_failure(task: asyncio.Task[Any]) -> None:
    """Surface exceptions from background readers (typically callbacks)."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("Background stream reader failed", exc_info=exc)
