"""llmasaservice: streaming client for the LLMAsAService chat endpoint.

Public API:
    - LLMSession: send prompts and observe response/idle/error state
    - ServiceConfig / Customer: per-session configuration
    - llm_service(): ambient configuration context
    - SendOptions / AbortHandle: per-call options and cancellation
"""

from __future__ import annotations

import logging

from llmasaservice.abort import AbortHandle, CallAborted
from llmasaservice.config import (
    Customer,
    ServiceConfig,
    current_service,
    llm_service,
    resolve_config,
)
from llmasaservice.errors import (
    APIError,
    ConfigurationError,
    LLMServiceError,
    StreamError,
)
from llmasaservice.options import SendOptions
from llmasaservice.reader import ByteReader
from llmasaservice.session import LLMSession
from llmasaservice.state import CallSnapshot, CallState
from llmasaservice.stream import StreamOutcome, StreamStatus

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("llmasaservice-client")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("llmasaservice").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "AbortHandle",
    "ByteReader",
    "CallAborted",
    "CallSnapshot",
    "CallState",
    "ConfigurationError",
    "Customer",
    "LLMServiceError",
    "LLMSession",
    "SendOptions",
    "ServiceConfig",
    "StreamError",
    "StreamOutcome",
    "StreamStatus",
    "current_service",
    "llm_service",
    "resolve_config",
]
