"""Canonical event stream framing and classification."""

from agenthub_server.streaming.classifier import (
    ORCHESTRATE_TOOL_NAME,
    classify,
    extract_plan,
    extract_session_token,
)
from agenthub_server.streaming.ndjson import (
    NDJSON_MEDIA_TYPE,
    decode_line,
    encode_event,
    iter_events,
    ndjson_stream,
)

__all__ = [
    "NDJSON_MEDIA_TYPE",
    "ORCHESTRATE_TOOL_NAME",
    "classify",
    "decode_line",
    "encode_event",
    "extract_plan",
    "extract_session_token",
    "iter_events",
    "ndjson_stream",
]
