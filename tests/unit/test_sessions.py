"""Unit tests for the conversation store and the stream recorder."""

import asyncio

import pytest

from agenthub_server.models.events import StreamEvent
from agenthub_server.sessions import (
    GROUP_SESSION_KEY,
    AssistantMessage,
    ConversationStore,
    ErrorMessage,
    PlanMessage,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from agenthub_server.sessions.recorder import StreamRecorder
from fakes import assistant_text


def tool_use(name="Read"):
    return StreamEvent.of(
        {
            "type": "assistant",
            "message": {"content": [{"type": "tool_use", "name": name, "input": {}}]},
        }
    )


def test_store_creates_sessions_lazily(store):
    assert store.get("web") is None

    session = store.get_or_create("web")

    assert session.key == "web"
    assert session.messages == []
    assert session.created_at.endswith("Z")
    assert store.get_or_create("web") is session
    assert store.keys() == ["web"]


def test_store_clear(store):
    store.get_or_create("web").session_token = "s1"

    assert store.clear("web") is True
    assert store.clear("web") is False
    assert store.session_token("web") is None


def test_store_lock_is_per_key(store):
    assert store.lock("web") is store.lock("web")
    assert store.lock("web") is not store.lock(GROUP_SESSION_KEY)


@pytest.mark.asyncio
async def test_recorder_appends_user_message(store):
    recorder = StreamRecorder(store, "web", "req-1")

    await recorder.begin("build the login page")

    message = store.get("web").messages[0]
    assert isinstance(message, UserMessage)
    assert message.content == "build the login page"
    assert message.request_id == "req-1"


@pytest.mark.asyncio
async def test_streaming_text_appends_to_open_message(store):
    """Consecutive text fragments merge into one assistant message."""
    recorder = StreamRecorder(store, "web", "req-1")
    await recorder.begin("hi")

    for fragment in ("Hel", "lo", " there"):
        await recorder.record(assistant_text(fragment))

    messages = store.get("web").messages
    assert len(messages) == 2
    assert isinstance(messages[1], AssistantMessage)
    assert messages[1].content == "Hello there"


@pytest.mark.asyncio
async def test_non_text_event_closes_open_message(store):
    recorder = StreamRecorder(store, "web", "req-1")

    await recorder.record(assistant_text("Let me look"))
    await recorder.record(tool_use())
    await recorder.record(assistant_text("Found it"))

    messages = store.get("web").messages
    assert [type(message) for message in messages] == [
        AssistantMessage,
        ToolMessage,
        AssistantMessage,
    ]
    assert messages[2].content == "Found it"


@pytest.mark.asyncio
async def test_interleaved_request_does_not_receive_fragments(store):
    """Text is only appended while the open message is still the last one."""
    first = StreamRecorder(store, GROUP_SESSION_KEY, "req-1")
    second = StreamRecorder(store, GROUP_SESSION_KEY, "req-2")

    await first.record(assistant_text("one"))
    await second.record(assistant_text("two"))
    await first.record(assistant_text(" more"))

    contents = [message.content for message in store.get(GROUP_SESSION_KEY).messages]
    assert contents == ["one", "two", " more"]


@pytest.mark.asyncio
async def test_terminal_event_closes_open_message(store):
    recorder = StreamRecorder(store, "web", "req-1")

    await recorder.record(assistant_text("partial"))
    await recorder.record(StreamEvent.done())
    await recorder.record(assistant_text("after"))

    assert len(store.get("web").messages) == 2


@pytest.mark.asyncio
async def test_recorder_tracks_session_token(store):
    recorder = StreamRecorder(store, "web", "req-1")

    await recorder.record(StreamEvent.of({"type": "system", "subtype": "init", "session_id": "s1"}))
    await recorder.record(assistant_text("hi", session_id="s2"))

    assert store.session_token("web") == "s2"
    assert isinstance(store.get("web").messages[0], SystemMessage)


@pytest.mark.asyncio
async def test_recorder_can_ignore_session_token(store):
    recorder = StreamRecorder(store, GROUP_SESSION_KEY, "req-1", track_session_token=False)

    await recorder.record(assistant_text("hi", session_id="s1"))

    assert store.session_token(GROUP_SESSION_KEY) is None


@pytest.mark.asyncio
async def test_recorder_remembers_last_plan(store):
    recorder = StreamRecorder(store, GROUP_SESSION_KEY, "req-1")
    plan = StreamEvent.of(
        {
            "type": "assistant",
            "message": {
                "content": [
                    {
                        "type": "tool_use",
                        "name": "orchestrate_execution",
                        "input": {
                            "steps": [
                                {"id": "s1", "agent": "web", "message": "go", "output_file": "/tmp/1"}
                            ]
                        },
                    }
                ]
            },
        }
    )

    await recorder.record(plan)

    assert [step.id for step in recorder.last_plan] == ["s1"]
    assert isinstance(store.get(GROUP_SESSION_KEY).messages[-1], PlanMessage)


@pytest.mark.asyncio
async def test_recorder_renders_abort(store):
    recorder = StreamRecorder(store, "web", "req-1")

    await recorder.record(StreamEvent.aborted())

    message = store.get("web").messages[-1]
    assert isinstance(message, ErrorMessage)
    assert message.aborted


@pytest.mark.asyncio
async def test_concurrent_writers_to_one_key_do_not_lose_messages():
    store = ConversationStore()

    async def write(request_id):
        recorder = StreamRecorder(store, "web", request_id)
        await recorder.begin(f"message {request_id}")
        for _ in range(5):
            await recorder.record(tool_use())
            await asyncio.sleep(0)

    await asyncio.gather(*(write(f"req-{i}") for i in range(4)))

    assert len(store.get("web").messages) == 4 * 6
