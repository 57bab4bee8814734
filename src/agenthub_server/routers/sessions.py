"""Conversation session endpoints.

Transcripts are kept in memory per agent (and one for the group chat). These
endpoints let a client read a transcript back and clear it to start a new
conversation.
"""

import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from agenthub_server.dependencies import get_conversation_store
from agenthub_server.models.sessions import (
    SessionListResponse,
    SessionResponse,
    TranscriptMessage,
)
from agenthub_server.sessions import ConversationStore, Message, PlanMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _transcript_message(message: Message) -> TranscriptMessage:
    payload = asdict(message)
    if isinstance(message, PlanMessage):
        payload["steps"] = [step.model_dump(mode="json") for step in message.steps]
    return TranscriptMessage.model_validate(payload)


def _not_found(key: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error": {
                "code": "session_not_found",
                "message": f"Session {key} not found",
                "details": {"key": key},
            }
        },
    )


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> SessionListResponse:
    return SessionListResponse(keys=store.keys())


@router.get("/{key}", response_model=SessionResponse)
async def get_session(
    key: str,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> SessionResponse:
    """Get the transcript and session token stored under ``key``.

    Raises:
        HTTPException: 404 if no session exists for the key.
    """
    session = store.get(key)
    if session is None:
        raise _not_found(key)
    async with store.lock(key):
        messages = [_transcript_message(message) for message in session.messages]
    return SessionResponse(
        key=session.key,
        session_id=session.session_token,
        created_at=session.created_at,
        updated_at=session.updated_at,
        message_count=len(messages),
        messages=messages,
    )


@router.delete("/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_session(
    key: str,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> Response:
    """Forget the transcript and session token stored under ``key``.

    Raises:
        HTTPException: 404 if no session exists for the key.
    """
    async with store.lock(key):
        cleared = store.clear(key)
    if not cleared:
        raise _not_found(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
