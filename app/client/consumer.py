"""Client-side consumer of the message stream.

One ``StreamConsumer`` renders one conversation. A send moves it through
``idle -> sending -> streaming -> settled``: the user's message is shown at
once as a pending local message, each fragment is appended to the visible
streaming text, and on the completion marker the transient state is dropped
and the conversation is fetched again from the server. Any transport, status
or in-band error sends it straight back to ``idle``; the partial reply stays
visible until the next refresh.
"""

import logging
from collections.abc import Callable
from contextlib import aclosing
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

import httpx

from app.client.chat_client import ChatClient, ChatClientError
from app.schemas.chat import ConversationDetailResponse, LocalMessage
from models.chat_message import MessageRole

logger = logging.getLogger(__name__)


class SendState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    SETTLED = "settled"


class SendInProgressError(RuntimeError):
    """A send was attempted while another one is still in flight."""


class StreamInterruptedError(Exception):
    """The server reported an error in-band or closed the stream early."""


class StreamConsumer:
    """Renders one conversation and drives sends against it."""

    def __init__(
        self,
        client: ChatClient,
        conversation_id: UUID,
        on_change: Callable[["StreamConsumer"], None] | None = None,
    ):
        self.client = client
        self.conversation_id = conversation_id
        self.on_change = on_change

        self.state = SendState.IDLE
        self.conversation: ConversationDetailResponse | None = None
        self.pending_messages: list[LocalMessage] = []
        self.streaming_content = ""
        self.last_error: Exception | None = None

    @property
    def is_busy(self) -> bool:
        return self.state in (SendState.SENDING, SendState.STREAMING)

    @property
    def messages(self) -> list[LocalMessage]:
        """Confirmed messages followed by local, not yet confirmed ones."""
        confirmed = []
        if self.conversation is not None:
            confirmed = [
                LocalMessage(role=message.role, content=message.content, created_at=message.created_at)
                for message in self.conversation.messages
            ]
        return confirmed + list(self.pending_messages)

    async def refresh(self) -> ConversationDetailResponse:
        """Replace local state with the server's copy of the conversation."""
        self.conversation = await self.client.get_conversation(self.conversation_id)
        self.pending_messages = []
        self.streaming_content = ""
        self._notify()
        return self.conversation

    async def send(self, content: str) -> SendState:
        """Send a message and consume the reply stream.

        Returns the state the send ended in: ``settled`` on success, ``idle``
        on failure (see ``last_error``).

        Raises:
            SendInProgressError: another send on this consumer is in flight
        """
        if self.is_busy:
            raise SendInProgressError("A message is already being sent in this conversation")

        self.last_error = None
        self.streaming_content = ""
        self.pending_messages.append(
            LocalMessage(role=MessageRole.USER, content=content, pending=True, created_at=datetime.now(UTC))
        )
        self._transition(SendState.SENDING)

        try:
            await self._consume_stream(content)
        except (httpx.HTTPError, ChatClientError, StreamInterruptedError) as e:
            logger.warning("Send on conversation %s failed: %s", self.conversation_id, e)
            self.last_error = e
            self._transition(SendState.IDLE)
            return self.state
        except BaseException:
            # Cancelled or failed unexpectedly; the consumer must not stay busy
            self._transition(SendState.IDLE)
            raise

        self._transition(SendState.SETTLED)
        try:
            await self.refresh()
        except (httpx.HTTPError, ChatClientError) as e:
            logger.warning("Refreshing conversation %s after send failed: %s", self.conversation_id, e)
            self.last_error = e
        return self.state

    async def _consume_stream(self, content: str) -> None:
        async with aclosing(self.client.stream_message(self.conversation_id, content)) as events:
            async for event in events:
                if event.is_error:
                    raise StreamInterruptedError(event.error)

                if event.is_fragment:
                    if self.state == SendState.SENDING:
                        self._transition(SendState.STREAMING)
                    self.streaming_content += event.content
                    self._notify()

                if event.is_done:
                    return

        raise StreamInterruptedError("Stream closed before the completion marker")

    def _transition(self, state: SendState) -> None:
        logger.debug("Conversation %s: %s -> %s", self.conversation_id, self.state.value, state.value)
        self.state = state
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
