"""Chat schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from app.core.config import settings
from models.chat_message import MessageRole

from .base import BaseModelSchema, BaseSchema


class ConversationCreate(BaseSchema):
    """Schema for creating a new conversation."""

    title: str | None = Field(
        None, min_length=1, max_length=settings.max_title_length, description="Optional conversation title"
    )


class MessageCreate(BaseSchema):
    """Schema for sending a message to a conversation."""

    content: str = Field(..., min_length=1, max_length=settings.max_message_length, description="Message content")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Reject messages made only of whitespace."""
        if not v.strip():
            raise ValueError("Message content cannot be blank")
        return v


class MessageResponse(BaseModelSchema):
    """Schema for chat message response."""

    conversation_id: UUID
    role: MessageRole
    content: str

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModelSchema):
    """Schema for chat conversation response."""

    user_id: UUID
    title: str

    model_config = ConfigDict(from_attributes=True)


class ConversationDetailResponse(ConversationResponse):
    """Schema for detailed chat conversation response with messages."""

    messages: list[MessageResponse] = Field(default_factory=list, description="Conversation messages, oldest first")


class ExchangeMessage(BaseSchema):
    """One provider-agnostic turn of the context sent upstream."""

    role: Literal["system", "user", "assistant"]
    content: str


class StreamEvent(BaseSchema):
    """A single event of the message stream.

    Exactly one of the fields is set: ``content`` for a fragment, ``done`` for
    the completion marker or ``error`` for a mid-stream failure.
    """

    content: str | None = None
    done: bool | None = None
    error: str | None = None

    @property
    def is_fragment(self) -> bool:
        return self.content is not None

    @property
    def is_done(self) -> bool:
        return bool(self.done)

    @property
    def is_error(self) -> bool:
        return self.error is not None


class LocalMessage(BaseSchema):
    """A message as held by a client, possibly not yet confirmed by the server."""

    role: MessageRole
    content: str
    pending: bool = False
    created_at: datetime | None = None


ConversationDetailResponse.model_rebuild()
