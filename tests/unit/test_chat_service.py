"""
Unit tests for ChatService.

This module contains unit tests for conversation listing, retrieval,
creation and deletion, including ownership scoping and storage failures.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.domains.chat.service import ChatService
from app.exceptions.chat import ChatStorageError, ConversationNotFoundError
from models import MessageRole
from tests.factories import (
    create_conversation_with_history,
    create_user_with_conversations,
    load_conversation,
    load_messages,
)


class TestChatService:
    """Test cases for ChatService."""

    @pytest.mark.asyncio
    async def test_list_conversations_newest_first(self, test_db):
        """Test conversations are listed most recently created first."""
        user, conversations = await create_user_with_conversations(test_db, num_conversations=3)
        service = ChatService(test_db)

        result = await service.list_conversations(user.id)

        assert [conversation.id for conversation in result] == [c.id for c in reversed(conversations)]

    @pytest.mark.asyncio
    async def test_list_conversations_only_returns_own(self, test_db, test_user, other_users_conversation):
        service = ChatService(test_db)
        own = await service.create_conversation(test_user.id)

        result = await service.list_conversations(test_user.id)

        assert [conversation.id for conversation in result] == [own.id]

    @pytest.mark.asyncio
    async def test_list_conversations_empty(self, test_db, test_user):
        service = ChatService(test_db)
        assert await service.list_conversations(test_user.id) == []

    @pytest.mark.asyncio
    async def test_get_conversation_with_messages_oldest_first(self, test_db, test_user):
        conversation, messages = await create_conversation_with_history(test_db, test_user.id, num_messages=4)
        service = ChatService(test_db)

        result = await service.get_conversation(conversation.id, test_user.id)

        assert result.id == conversation.id
        assert result.title == conversation.title
        assert [message.content for message in result.messages] == [m.content for m in messages]
        assert [message.role for message in result.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]

    @pytest.mark.asyncio
    async def test_get_conversation_not_found(self, test_db, test_user):
        service = ChatService(test_db)
        missing_id = uuid.uuid4()

        with pytest.raises(ConversationNotFoundError) as exc_info:
            await service.get_conversation(missing_id, test_user.id)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details == {"conversation_id": str(missing_id)}

    @pytest.mark.asyncio
    async def test_get_other_users_conversation_is_not_found(self, test_db, test_user, other_users_conversation):
        """Test ownership failures are indistinguishable from missing conversations."""
        service = ChatService(test_db)

        with pytest.raises(ConversationNotFoundError):
            await service.get_conversation(other_users_conversation.id, test_user.id)

    @pytest.mark.asyncio
    async def test_create_conversation_default_title(self, test_db, test_user):
        service = ChatService(test_db)

        result = await service.create_conversation(test_user.id)

        assert result.title == settings.default_conversation_title == "New Chat"
        assert result.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_create_conversation_with_title(self, test_db, test_user):
        service = ChatService(test_db)

        result = await service.create_conversation(test_user.id, title="Book club")

        assert result.title == "Book club"

    @pytest.mark.asyncio
    async def test_create_conversation_storage_failure(self, test_db, test_user):
        service = ChatService(test_db)

        with patch.object(
            test_db, "commit", new=AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        ):
            with pytest.raises(ChatStorageError) as exc_info:
                await service.create_conversation(test_user.id)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "STORAGE_ERROR"

    @pytest.mark.asyncio
    async def test_delete_conversation_removes_messages(self, test_db, test_user, test_database):
        conversation, _ = await create_conversation_with_history(test_db, test_user.id, num_messages=4)
        service = ChatService(test_db)

        deleted = await service.delete_conversation(conversation.id, test_user.id)

        assert deleted is True
        assert await load_conversation(test_database, conversation.id) is None
        assert await load_messages(test_database, conversation.id) == []

    @pytest.mark.asyncio
    async def test_delete_conversation_twice_is_noop(self, test_db, test_user):
        service = ChatService(test_db)
        conversation = await service.create_conversation(test_user.id)

        assert await service.delete_conversation(conversation.id, test_user.id) is True
        assert await service.delete_conversation(conversation.id, test_user.id) is False

    @pytest.mark.asyncio
    async def test_delete_other_users_conversation_is_noop(
        self, test_db, test_user, other_users_conversation, test_database
    ):
        service = ChatService(test_db)

        assert await service.delete_conversation(other_users_conversation.id, test_user.id) is False
        assert await load_conversation(test_database, other_users_conversation.id) is not None
