"""HTTP client for the conversation API.

Wraps an ``httpx.AsyncClient`` with typed calls for every conversation
endpoint. ``stream_message`` reads the event stream line by line as the
server produces it and yields decoded ``StreamEvent`` objects; lines that
cannot be decoded are logged and skipped so one bad line does not abort an
otherwise healthy stream.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

import httpx

from app.schemas.chat import ConversationDetailResponse, ConversationResponse, StreamEvent
from app.shared.sse import EVENT_STREAM_MEDIA_TYPE, decode_line

logger = logging.getLogger(__name__)


class ChatClientError(Exception):
    """Raised when the API answers with a non-success status."""

    def __init__(self, status_code: int, message: str, error_code: str | None = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.error_code = error_code


class ConversationNotFoundClientError(ChatClientError):
    """The conversation does not exist or is not visible to the caller."""


class ChatClient:
    """Typed access to the conversation endpoints for one authenticated caller."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_conversations(self) -> list[ConversationResponse]:
        response = await self._client.get("/api/conversations")
        await self._raise_for_status(response)
        return [ConversationResponse.model_validate(item) for item in response.json()]

    async def get_conversation(self, conversation_id: UUID) -> ConversationDetailResponse:
        response = await self._client.get(f"/api/conversations/{conversation_id}")
        await self._raise_for_status(response)
        return ConversationDetailResponse.model_validate(response.json())

    async def create_conversation(self, title: str | None = None) -> ConversationResponse:
        body: dict[str, Any] = {"title": title} if title else {}
        response = await self._client.post("/api/conversations", json=body)
        await self._raise_for_status(response)
        return ConversationResponse.model_validate(response.json())

    async def delete_conversation(self, conversation_id: UUID) -> None:
        response = await self._client.delete(f"/api/conversations/{conversation_id}")
        await self._raise_for_status(response)

    async def stream_message(self, conversation_id: UUID, content: str) -> AsyncIterator[StreamEvent]:
        """Send a message and yield the reply's events as they arrive."""
        async with self._client.stream(
            "POST",
            f"/api/conversations/{conversation_id}/messages",
            json={"content": content},
            headers={"Accept": EVENT_STREAM_MEDIA_TYPE},
        ) as response:
            await self._raise_for_status(response)

            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    event = decode_line(line)
                except ValueError as e:
                    logger.debug("Ignoring malformed stream line %r: %s", line, e)
                    continue
                if event is not None:
                    yield event

    @staticmethod
    async def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return

        await response.aread()
        message = response.reason_phrase or "Request failed"
        error_code = None
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            error_code = body.get("error_code")

        if response.status_code == 404:
            raise ConversationNotFoundClientError(response.status_code, message, error_code)
        raise ChatClientError(response.status_code, message, error_code)
