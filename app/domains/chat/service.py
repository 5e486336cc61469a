"""Chat service layer for conversation management."""

import logging
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.exceptions.chat import ChatStorageError, ConversationNotFoundError
from app.schemas.chat import ConversationDetailResponse, ConversationResponse, MessageResponse
from models.chat_conversation import ChatConversation
from models.chat_message import ChatMessage

logger = logging.getLogger(__name__)


class ChatService:
    """Service class for conversation CRUD scoped to one owner."""

    def __init__(self, db: AsyncSession):
        """Initialize chat service with database session.

        Args:
            db: Async database session for data operations.
        """
        self.db = db

    async def list_conversations(self, user_id: UUID) -> list[ConversationResponse]:
        """Get all conversations for a user, newest first.

        Args:
            user_id: Owner of the conversations

        Returns:
            List of conversations
        """
        query = (
            select(ChatConversation)
            .where(ChatConversation.user_id == user_id)
            .order_by(ChatConversation.created_at.desc())
        )
        result = await self.db.execute(query)
        return [ConversationResponse.model_validate(conv) for conv in result.scalars().all()]

    async def get_conversation(self, conversation_id: UUID, user_id: UUID) -> ConversationDetailResponse:
        """Get conversation with all messages.

        Args:
            conversation_id: Conversation ID
            user_id: User ID for authorization

        Returns:
            Conversation with messages, oldest first

        Raises:
            ConversationNotFoundError: If the conversation is absent or not owned by the user
        """
        conversation = await self._get_owned_conversation(conversation_id, user_id)
        if not conversation:
            raise ConversationNotFoundError(conversation_id)

        messages_query = (
            select(ChatMessage).where(ChatMessage.conversation_id == conversation_id).order_by(ChatMessage.created_at)
        )
        messages_result = await self.db.execute(messages_query)
        messages = messages_result.scalars().all()

        return ConversationDetailResponse(
            id=conversation.id,
            user_id=conversation.user_id,
            title=conversation.title,
            messages=[MessageResponse.model_validate(msg) for msg in messages],
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )

    async def create_conversation(self, user_id: UUID, title: str | None = None) -> ConversationResponse:
        """Create a conversation, titled "New Chat" unless a title is given."""
        conversation = ChatConversation(user_id=user_id, title=title or settings.default_conversation_title)

        try:
            self.db.add(conversation)
            await self.db.commit()
            await self.db.refresh(conversation)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create conversation: {str(e)}")
            raise ChatStorageError("Failed to create conversation") from e

        logger.info(f"Created conversation {conversation.id} for user {user_id}")
        return ConversationResponse.model_validate(conversation)

    async def delete_conversation(self, conversation_id: UUID, user_id: UUID) -> bool:
        """Delete a conversation and its messages.

        Deleting a conversation that does not exist, or belongs to another
        user, is a no-op.

        Returns:
            True if something was deleted
        """
        conversation = await self._get_owned_conversation(conversation_id, user_id)
        if not conversation:
            return False

        try:
            await self.db.execute(delete(ChatMessage).where(ChatMessage.conversation_id == conversation_id))
            await self.db.delete(conversation)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete conversation {conversation_id}: {str(e)}")
            raise ChatStorageError("Failed to delete conversation") from e

        logger.info(f"Deleted conversation {conversation_id}")
        return True

    async def _get_owned_conversation(self, conversation_id: UUID, user_id: UUID) -> ChatConversation | None:
        query = select(ChatConversation).where(
            ChatConversation.id == conversation_id, ChatConversation.user_id == user_id
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()
