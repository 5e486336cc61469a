"""Chat-related exceptions."""

from typing import Any
from uuid import UUID

from .base import BaseAppException, NotFoundError


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation is absent or owned by another user."""

    def __init__(self, conversation_id: UUID | None = None, message: str = "Conversation not found"):
        details = {"conversation_id": str(conversation_id)} if conversation_id else None
        super().__init__(message=message, error_code="CONVERSATION_NOT_FOUND", details=details)


class ChatStorageError(BaseAppException):
    """Raised when reading or writing conversation history fails."""

    def __init__(self, message: str = "Conversation storage is unavailable", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=500, error_code="STORAGE_ERROR", details=details)
