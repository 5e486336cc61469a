"""
Chat message model for AI companion messages.
"""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """
    Represents a chat message entity in the application.

    Messages are insert-only: they are never updated after creation.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (Index("idx_chat_messages_conversation_created", "conversation_id", "created_at"),)

    conversation_id = Column(UUID(), ForeignKey("chat_conversations.id", ondelete="CASCADE"), nullable=False)
    role = Column(Enum(MessageRole, values_callable=lambda roles: [r.value for r in roles]), nullable=False)
    content = Column(Text, nullable=False)

    # Relationships
    conversation = relationship("ChatConversation", back_populates="messages")
