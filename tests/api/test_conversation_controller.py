"""
API tests for the conversation endpoints.

This module covers listing, fetching, creating and deleting conversations,
including authentication and ownership checks.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.factories import create_conversation_with_history, load_conversation


class TestConversationController:
    """Test cases for conversation CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/conversations")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        data = response.json()
        assert data["status"] == "error"
        assert data["message"] == "Authentication token is required"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/conversations", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_create_conversation_defaults(self, authenticated_client: AsyncClient, test_user):
        response = await authenticated_client.post("/api/conversations")

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["title"] == "New Chat"
        assert data["user_id"] == str(test_user.id)
        assert "id" in data
        assert "created_at" in data

    @pytest.mark.asyncio
    async def test_create_conversation_with_title(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post("/api/conversations", json={"title": "Gardening"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["title"] == "Gardening"

    @pytest.mark.asyncio
    async def test_create_conversation_empty_title_invalid(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post("/api/conversations", json={"title": ""})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_conversations_newest_first(self, authenticated_client: AsyncClient):
        first = (await authenticated_client.post("/api/conversations", json={"title": "First"})).json()
        second = (await authenticated_client.post("/api/conversations", json={"title": "Second"})).json()

        response = await authenticated_client.get("/api/conversations")

        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.json()] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_list_excludes_other_users(self, authenticated_client: AsyncClient, other_users_conversation):
        response = await authenticated_client.get("/api/conversations")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_get_conversation_with_messages(self, authenticated_client: AsyncClient, test_db, test_user):
        conversation, messages = await create_conversation_with_history(test_db, test_user.id, num_messages=4)

        response = await authenticated_client.get(f"/api/conversations/{conversation.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == str(conversation.id)
        assert [message["content"] for message in data["messages"]] == [m.content for m in messages]
        assert [message["role"] for message in data["messages"]] == ["user", "assistant", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_get_missing_conversation(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"/api/conversations/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        data = response.json()
        assert data["error_code"] == "CONVERSATION_NOT_FOUND"
        assert data["message"] == "Conversation not found"

    @pytest.mark.asyncio
    async def test_get_other_users_conversation(self, authenticated_client: AsyncClient, other_users_conversation):
        """Test another user's conversation is indistinguishable from a missing one."""
        response = await authenticated_client.get(f"/api/conversations/{other_users_conversation.id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "CONVERSATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_get_invalid_id(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/conversations/not-a-uuid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_delete_conversation(self, authenticated_client: AsyncClient, test_db, test_user):
        conversation, _ = await create_conversation_with_history(test_db, test_user.id, num_messages=2)

        response = await authenticated_client.delete(f"/api/conversations/{conversation.id}")
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert response.content == b""

        follow_up = await authenticated_client.get(f"/api/conversations/{conversation.id}")
        assert follow_up.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, authenticated_client: AsyncClient, test_conversation):
        first = await authenticated_client.delete(f"/api/conversations/{test_conversation.id}")
        second = await authenticated_client.delete(f"/api/conversations/{test_conversation.id}")

        assert first.status_code == status.HTTP_204_NO_CONTENT
        assert second.status_code == status.HTTP_204_NO_CONTENT

    @pytest.mark.asyncio
    async def test_delete_other_users_conversation_is_noop(
        self, authenticated_client: AsyncClient, other_users_conversation, test_database
    ):
        response = await authenticated_client.delete(f"/api/conversations/{other_users_conversation.id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert await load_conversation(test_database, other_users_conversation.id) is not None

    @pytest.mark.asyncio
    async def test_responses_carry_request_id(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"/api/conversations/{uuid.uuid4()}")

        assert response.headers["X-Request-ID"] == response.json()["request_id"]
