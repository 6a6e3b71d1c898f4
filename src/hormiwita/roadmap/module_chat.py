"""Guided sub-flow chat session with streamed assistant replies."""
from dataclasses import replace
from typing import AsyncIterable, Callable, Optional, Tuple

from ..onboarding.state import ChatMessage, Role
from ..utils.logger import get_logger

logger = get_logger()

STREAM_ERROR_MESSAGE = "Lo siento, no pude responder en este momento. Inténtalo de nuevo."


async def fold_stream(
    stream: AsyncIterable[str],
    on_chunk: Callable[[str], None],
    is_alive: Callable[[], bool] = lambda: True
) -> str:
    """
    Fold chunks in arrival order until the stream ends or is_alive() turns false.

    Returns:
        Concatenation of the chunks that were folded
    """
    folded = []
    async for chunk in stream:
        if not is_alive():
            logger.debug("Stream abandoned, folding stopped")
            break
        if not chunk:
            continue
        folded.append(chunk)
        on_chunk(chunk)
    return "".join(folded)


class ModuleChatSession:
    """Chat for one roadmap step, backed by a streaming guided-flow oracle."""

    def __init__(
        self,
        flow_identifier: str,
        oracle,
        profile=None,
        on_chunk: Optional[Callable[[str], None]] = None
    ):
        """
        Args:
            flow_identifier: Guided flow to run
            oracle: Object exposing stream_generate(flow_identifier, history, context)
                returning an async-iterable of text chunks
            profile: UserProfile used as financial context
            on_chunk: Called with every folded chunk, e.g. to echo it
        """
        self.flow_identifier = flow_identifier
        self.oracle = oracle
        self.profile = profile
        self.on_chunk = on_chunk
        self.messages: Tuple[ChatMessage, ...] = ()
        self.loading = False
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    async def open(self) -> Optional[ChatMessage]:
        """Stream the opening assistant message."""
        return await self._stream_reply(())

    async def send(self, content: str) -> Optional[ChatMessage]:
        """
        Append a user message and stream the reply.

        Returns:
            Final assistant message, or None when the message was not accepted
        """
        if not content or not content.strip() or self.loading or not self._alive:
            logger.debug(f"Message ignored in {self.flow_identifier} (loading={self.loading}, alive={self._alive})")
            return None

        self.messages = self.messages + (ChatMessage(Role.USER, content.strip()),)
        return await self._stream_reply(self.messages)

    def close(self) -> None:
        """Stop folding any stream still in flight."""
        self._alive = False

    async def _stream_reply(self, history: Tuple[ChatMessage, ...]) -> Optional[ChatMessage]:
        if not self._alive:
            return None

        self.loading = True
        placeholder = ChatMessage(Role.ASSISTANT, "")
        self.messages = self.messages + (placeholder,)

        def on_chunk(chunk: str) -> None:
            self._update(placeholder.id, lambda message: replace(message, content=message.content + chunk))
            if self.on_chunk is not None:
                self.on_chunk(chunk)

        try:
            stream = self.oracle.stream_generate(self.flow_identifier, history, self.profile)
            await fold_stream(stream, on_chunk, lambda: self._alive)
        except Exception as e:
            logger.error(f"Guided flow {self.flow_identifier} stream failed: {e}")
            if self._alive:
                self._update(
                    placeholder.id,
                    lambda message: message if message.content else replace(message, content=STREAM_ERROR_MESSAGE)
                )
        finally:
            self.loading = False

        return self._find(placeholder.id)

    def _update(self, message_id: str, change: Callable[[ChatMessage], ChatMessage]) -> None:
        self.messages = tuple(
            change(message) if message.id == message_id else message
            for message in self.messages
        )

    def _find(self, message_id: str) -> Optional[ChatMessage]:
        return next((message for message in self.messages if message.id == message_id), None)
