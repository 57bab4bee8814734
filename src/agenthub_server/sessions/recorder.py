"""Mirrors a request's event stream into a conversation session.

A ``StreamRecorder`` is the consumer side of one request. It appends the
user's message, then classifies every event and appends the rendered
messages. Assistant text arriving as several consecutive events is merged
into one message (streaming-append) as long as that message is still the
last one in the transcript; anything else closes it.
"""

import logging
import uuid
from datetime import datetime, timezone

from agenthub_server.models.events import StreamEvent
from agenthub_server.models.plans import ExecutionStep
from agenthub_server.sessions.store import ConversationStore
from agenthub_server.sessions.types import AssistantMessage, PlanMessage, UserMessage
from agenthub_server.streaming.classifier import classify, extract_session_token

logger = logging.getLogger(__name__)


class StreamRecorder:
    """Records one request's stream into the session stored under ``session_key``.

    Args:
        store: The conversation store.
        session_key: Agent id or the group session key.
        request_id: The request being recorded.
        track_session_token: Whether session tokens seen on the stream replace
            the stored one. The group transcript of plan steps mirrors other
            agents' streams and must not adopt their tokens.
    """

    def __init__(
        self,
        store: ConversationStore,
        session_key: str,
        request_id: str,
        track_session_token: bool = True,
    ) -> None:
        self.store = store
        self.session_key = session_key
        self.request_id = request_id
        self.track_session_token = track_session_token
        self.last_plan: list[ExecutionStep] | None = None
        self._open_assistant: AssistantMessage | None = None

    async def begin(self, message_text: str) -> None:
        """Append the user's message that started the request."""
        async with self.store.lock(self.session_key):
            session = self.store.get_or_create(self.session_key)
            session.messages.append(
                UserMessage(
                    content=message_text,
                    request_id=self.request_id,
                    message_id=uuid.uuid4().hex[:10],
                    timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                )
            )
            self.store.touch(session)

    async def record(self, event: StreamEvent) -> None:
        async with self.store.lock(self.session_key):
            session = self.store.get_or_create(self.session_key)

            if self.track_session_token:
                token = extract_session_token(event)
                if token and token != session.session_token:
                    logger.debug(f"Session {self.session_key} token is now {token}")
                    session.session_token = token

            message = classify(event, request_id=self.request_id)

            if isinstance(message, AssistantMessage):
                open_message = self._open_assistant
                if (
                    open_message is not None
                    and session.messages
                    and session.messages[-1] is open_message
                ):
                    open_message.content += message.content
                else:
                    session.messages.append(message)
                    self._open_assistant = message
            else:
                if event.is_terminal or message is not None:
                    self._open_assistant = None
                if message is not None:
                    session.messages.append(message)
                    if isinstance(message, PlanMessage):
                        self.last_plan = message.steps

            self.store.touch(session)
