"""Streaming relay between the upstream provider and the client.

A send is split in two phases. ``open_turn`` and ``open_upstream`` run before
the HTTP response is committed, so their failures still produce ordinary
error responses: the user message is persisted, the ordered history is
loaded and the upstream request is opened. ``relay`` then runs as the body of
the streaming response: it forwards each fragment as soon as it arrives and,
once the upstream is exhausted, persists the assistant reply (and the derived
title on a first exchange) before sending the completion marker. Anything
that fails from then on can only be reported in-band.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.database import Database
from app.domains.chat.provider import CompletionProvider
from app.exceptions.ai import AIServiceError
from app.exceptions.chat import ChatStorageError, ConversationNotFoundError
from app.schemas.chat import ExchangeMessage
from app.schemas.user import AuthContext
from app.shared.sse import done_event, error_event, fragment_event
from models import ChatConversation, ChatMessage, MessageRole

logger = logging.getLogger(__name__)

GENERIC_STREAM_ERROR = "Failed to send message"
ELLIPSIS = "..."


def derive_title(first_message: str, max_chars: int = 40) -> str:
    """Title for a conversation, taken from its first user message."""
    if len(first_message) > max_chars:
        return first_message[:max_chars] + ELLIPSIS
    return first_message


@dataclass(frozen=True)
class ChatTurn:
    """State of one send, carried from the opening phase into the stream."""

    conversation_id: UUID
    user_id: UUID
    user_message_id: UUID
    content: str
    exchange: list[ExchangeMessage]
    history_length: int

    @property
    def is_first_exchange(self) -> bool:
        return self.history_length == 1


class StreamRelay:
    """Relays one user message to the provider and the reply back to the client."""

    def __init__(self, database: Database, provider: CompletionProvider, app_settings: Settings):
        self.database = database
        self.provider = provider
        self.system_prompt = app_settings.assistant_system_prompt
        self.title_preview_length = app_settings.title_preview_length

    async def open_turn(self, auth: AuthContext, conversation_id: UUID, content: str) -> ChatTurn:
        """Persist the user message and build the exchange for the provider.

        Raises:
            ConversationNotFoundError: conversation absent or owned by someone else
            ChatStorageError: the message could not be written or the history read
        """
        async with self.database.session() as session:
            try:
                conversation = await self._get_owned_conversation(session, conversation_id, auth.user_id)
                if conversation is None:
                    raise ConversationNotFoundError(conversation_id)

                user_message = ChatMessage(conversation_id=conversation_id, role=MessageRole.USER, content=content)
                session.add(user_message)
                await session.commit()

                history = await self._load_history(session, conversation_id)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Failed to record message for conversation %s: %s", conversation_id, str(e))
                raise ChatStorageError() from e

        logger.info("Opened turn on conversation %s with %d messages of history", conversation_id, len(history))
        return ChatTurn(
            conversation_id=conversation_id,
            user_id=auth.user_id,
            user_message_id=user_message.id,
            content=content,
            exchange=self.build_exchange(history),
            history_length=len(history),
        )

    def build_exchange(self, history: list[ChatMessage]) -> list[ExchangeMessage]:
        """Map stored history, oldest first, to the exchange sent upstream."""
        exchange = [ExchangeMessage(role="system", content=self.system_prompt)]
        exchange.extend(ExchangeMessage(role=message.role.value, content=message.content) for message in history)
        return exchange

    async def open_upstream(self, turn: ChatTurn) -> AsyncIterator[str]:
        """Open the provider's incremental completion for the turn."""
        return await self.provider.open_stream(turn.exchange)

    async def relay(self, turn: ChatTurn, fragments: AsyncIterator[str]) -> AsyncIterator[str]:
        """Body of the streaming response: encoded events, in production order."""
        accumulated: list[str] = []
        try:
            async with aclosing(fragments) as upstream:
                async for fragment in upstream:
                    if not fragment:
                        continue
                    accumulated.append(fragment)
                    yield fragment_event(fragment)

            await self.complete_turn(turn, "".join(accumulated))
            yield done_event()

        except AIServiceError as e:
            logger.error(
                "Upstream failed after %d fragments on conversation %s: %s",
                len(accumulated),
                turn.conversation_id,
                e.message,
            )
            yield error_event(e.message)
        except ChatStorageError:
            logger.warning(
                "Reply of %d fragments streamed but not stored on conversation %s",
                len(accumulated),
                turn.conversation_id,
                exc_info=True,
            )
            yield error_event(GENERIC_STREAM_ERROR)
        except Exception:
            logger.exception("Unexpected failure while streaming conversation %s", turn.conversation_id)
            yield error_event(GENERIC_STREAM_ERROR)

    async def complete_turn(self, turn: ChatTurn, reply: str) -> None:
        """Persist the assistant reply and, on a first exchange, the derived title."""
        async with self.database.session() as session:
            try:
                session.add(ChatMessage(conversation_id=turn.conversation_id, role=MessageRole.ASSISTANT, content=reply))

                if turn.is_first_exchange:
                    await session.execute(
                        update(ChatConversation)
                        .where(ChatConversation.id == turn.conversation_id)
                        .values(title=derive_title(turn.content, self.title_preview_length))
                    )

                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "Streamed reply could not be stored for conversation %s: %s", turn.conversation_id, str(e)
                )
                raise ChatStorageError("Assistant reply could not be stored") from e

        logger.info("Stored %d-character reply on conversation %s", len(reply), turn.conversation_id)

    @staticmethod
    async def _get_owned_conversation(
        session: AsyncSession, conversation_id: UUID, user_id: UUID
    ) -> ChatConversation | None:
        result = await session.execute(
            select(ChatConversation).where(ChatConversation.id == conversation_id, ChatConversation.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _load_history(session: AsyncSession, conversation_id: UUID) -> list[ChatMessage]:
        result = await session.execute(
            select(ChatMessage).where(ChatMessage.conversation_id == conversation_id).order_by(ChatMessage.created_at)
        )
        return list(result.scalars().all())
