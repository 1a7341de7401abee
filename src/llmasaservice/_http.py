"""Small HTTP-related constants shared across the client.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

DEFAULT_URL = "https://chat.llmasaservice.io/"

# The service reads the body as plain text and parses the JSON itself.
CONTENT_TYPE = "text/plain"

#: Response header carrying the per-call correlation id.
CALL_ID_HEADER = "x-callId"

#: In-band marker: a response body starting with this is a server error.
ERROR_SENTINEL = "Error:"

# Statuses worth retrying by the caller. The client itself never retries.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})
