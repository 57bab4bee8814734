"""Canonical stream event envelope.

Every adapter produces a sequence of these events and every consumer reads
them. On the wire each event is one JSON object on its own line:
``{"type": "data"|"done"|"aborted"|"error", "data"?: ..., "error"?: ...}``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

EventType = Literal["data", "done", "aborted", "error"]

TERMINAL_EVENT_TYPES = frozenset({"done", "aborted", "error"})


class StreamEvent(BaseModel):
    """One canonical event of a request's stream.

    ``data`` carries an upstream-shaped payload whose ``type`` is
    ``system``, ``assistant`` or ``result``. Exactly one terminal event
    (``done``, ``aborted`` or ``error``) ends every stream.
    """

    type: EventType
    data: dict[str, Any] | None = None
    error: str | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    @property
    def subtype(self) -> str | None:
        """The upstream payload type of a data event (system/assistant/result)."""
        if self.type != "data" or not self.data:
            return None
        value = self.data.get("type")
        return value if isinstance(value, str) else None

    @classmethod
    def of(cls, payload: dict[str, Any]) -> "StreamEvent":
        return cls(type="data", data=payload)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(type="done")

    @classmethod
    def aborted(cls) -> "StreamEvent":
        return cls(type="aborted")

    @classmethod
    def failure(cls, message: str) -> "StreamEvent":
        return cls(type="error", error=message)
