"""Chat API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_auth_context, get_db, get_stream_relay
from app.domains.chat.relay import StreamRelay
from app.domains.chat.service import ChatService
from app.schemas.chat import ConversationCreate, ConversationDetailResponse, ConversationResponse, MessageCreate
from app.schemas.user import AuthContext
from app.shared.sse import EVENT_STREAM_MEDIA_TYPE, STREAM_HEADERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's conversations, newest first."""
    service = ChatService(db)
    return await service.list_conversations(user_id=auth.user_id)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific conversation with all messages.

    Args:
        conversation_id: Conversation ID
        auth: Authenticated caller
        db: Database session

    Returns:
        Conversation with messages, oldest first
    """
    service = ChatService(db)
    return await service.get_conversation(conversation_id=conversation_id, user_id=auth.user_id)


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: ConversationCreate | None = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a new conversation."""
    service = ChatService(db)
    return await service.create_conversation(user_id=auth.user_id, title=payload.title if payload else None)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Delete a conversation and its messages. Deleting twice is not an error."""
    service = ChatService(db)
    deleted = await service.delete_conversation(conversation_id=conversation_id, user_id=auth.user_id)
    if not deleted:
        logger.info(f"Delete of conversation {conversation_id} was a no-op")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{conversation_id}/messages")
async def send_message(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    payload: MessageCreate = Body(...),
    auth: AuthContext = Depends(get_auth_context),
    relay: StreamRelay = Depends(get_stream_relay),
):
    """Send a message and stream the assistant's reply.

    The response is an event stream of ``data: <JSON>`` lines: ``{"content"}``
    per fragment, then ``{"done": true}``, or ``{"error"}`` if the stream
    fails once started. Failures before the stream starts are ordinary
    error responses.
    """
    turn = await relay.open_turn(auth, conversation_id, payload.content)
    fragments = await relay.open_upstream(turn)

    return StreamingResponse(
        relay.relay(turn, fragments),
        media_type=EVENT_STREAM_MEDIA_TYPE,
        headers=STREAM_HEADERS,
    )
