"""Newline-delimited JSON framing of the canonical event stream.

Each event is serialized as one JSON object terminated by ``\\n``. Decoding is
lenient at the stream level: a line that is not a valid event is dropped by
``iter_events`` and the stream continues.
"""

import json
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Iterator

from pydantic import ValidationError

from agenthub_server.models.events import StreamEvent

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def encode_event(event: StreamEvent) -> str:
    """Serialize one event as a single NDJSON line."""
    return event.model_dump_json(exclude_none=True) + "\n"


def decode_line(line: str | bytes) -> StreamEvent:
    """Parse one NDJSON line into an event.

    Raises:
        ValueError: If the line is blank, not JSON, or not a valid event envelope.
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    text = line.strip()
    if not text:
        raise ValueError("Empty line")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("Event line is not a JSON object")
    try:
        return StreamEvent.model_validate(payload)
    except ValidationError as e:
        raise ValueError(f"Invalid event envelope: {e}") from e


def iter_events(lines: Iterable[str | bytes]) -> Iterator[StreamEvent]:
    """Decode a sequence of lines, skipping the ones that do not parse."""
    for line in lines:
        try:
            yield decode_line(line)
        except ValueError as e:
            if str(e) != "Empty line":
                logger.warning(f"Dropping malformed stream line: {e}")


def connection_ack() -> StreamEvent:
    return StreamEvent.of(
        {
            "type": "system",
            "subtype": "connection_ack",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
    )


async def ndjson_stream(
    events: AsyncIterator[StreamEvent], ack: bool = True
) -> AsyncIterator[str]:
    """Frame an event iterator as NDJSON response lines.

    The output always ends with exactly one terminal event: everything after
    the first terminal is discarded, an exception from ``events`` becomes an
    ``error`` event and a producer that stops early gets a ``done`` appended.
    """
    if ack:
        yield encode_event(connection_ack())

    try:
        async for event in events:
            yield encode_event(event)
            if event.is_terminal:
                return
    except Exception as e:
        logger.exception("Event stream failed")
        yield encode_event(StreamEvent.failure(str(e)))
        return
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()

    logger.debug("Event stream ended without a terminal event, appending done")
    yield encode_event(StreamEvent.done())
