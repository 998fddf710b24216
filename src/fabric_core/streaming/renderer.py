"""Live rendering of a streamed reply into a chat message.

The renderer owns one outbound message at a time. It posts a placeholder,
edits the message as text streams in (no more often than the configured
interval), and moves overflow into a continuation message when the text
outgrows the platform's message size limit.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel

from fabric_core.messaging.protocol import (
    MessageDestination,
    MessagingClient,
    PostedMessage,
)

if TYPE_CHECKING:
    from fabric_core.config import FabricConfig

logger = logging.getLogger(__name__)


class RendererStateError(RuntimeError):
    """Renderer used out of order (double start, append before start, ...)."""


class MessageTransportError(RuntimeError):
    """A create or edit call returned no usable message identity."""


class FinalizedMessage(BaseModel):
    """Outcome of one rendered message.

    Attributes:
        text: Everything appended since ``start``, across continuation splits.
        message_id: Id of the last message written, or None if the final
            write failed.
        timestamp: Platform timestamp of that message, or None.
        channel: Channel of that message, or None.
    """

    text: str
    message_id: str | None = None
    timestamp: str | None = None
    channel: str | None = None


def find_split_index(text: str, limit: int) -> int | None:
    """Find the newline to split an oversized message at.

    Prefers the last newline at or before ``limit``; otherwise takes the first
    newline after it. A newline at index 0 is never used since it would leave
    an empty first message.

    Args:
        text: Message text.
        limit: Maximum message length. Negative values are treated as 0.

    Returns:
        Index of the newline to split at, or None if there is none usable.
    """
    limit = max(limit, 0)
    last_before = text.rfind("\n", 0, limit + 1)
    if last_before > 0:
        return last_before
    first_after = text.find("\n", limit)
    if first_after > 0:
        return first_after
    return None


def split_overflowing_text(text: str, limit: int) -> tuple[str, str]:
    """Split text into a prefix for the current message and a suffix.

    The newline at the split point is consumed as the message boundary. When
    no split point exists the whole text is returned as the prefix.
    """
    index = find_split_index(text, limit)
    if index is None:
        logger.warning(
            "No newline to split oversized message at length=%d limit=%d",
            len(text),
            limit,
        )
        return text, ""
    return text[:index], text[index + 1 :]


class ResponseRenderer:
    """Streams text into a single live chat message.

    State machine: empty -> in progress (``start``) -> empty (``finalize``).
    An instance belongs to one turn at a time and is reusable once finalized.

    Example:
        ```python
        renderer = ResponseRenderer(messaging, destination, edit_interval_ms=1000,
                                    max_message_length=3900)
        await renderer.start("_thinking..._")
        async for chunk in stream:
            await renderer.append(chunk.content)
        finalized = await renderer.finalize()
        ```
    """

    def __init__(
        self,
        messaging: MessagingClient,
        destination: MessageDestination,
        *,
        edit_interval_ms: int = 1000,
        max_message_length: int = 3900,
        min_stream_length: int = 10,
        continuation_placeholder: str = "_takes deep breath_",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the renderer.

        Args:
            messaging: Platform client used for create and edit calls.
            destination: Channel/thread that messages are posted to.
            edit_interval_ms: Minimum time between two writes to a message.
            max_message_length: Platform limit for one message's text.
            min_stream_length: Accumulated text must be longer than this
                before ``append`` triggers an edit.
            continuation_placeholder: Text of a freshly split-off message.
            clock: Monotonic clock in seconds.
            sleep: Coroutine used to wait out the cooldown.
        """
        self._messaging = messaging
        self._destination = destination
        self._edit_interval_ms = edit_interval_ms
        self._max_message_length = max_message_length
        self._min_stream_length = min_stream_length
        self._continuation_placeholder = continuation_placeholder
        self._clock = clock
        self._sleep = sleep

        self._message: PostedMessage | None = None
        self._text = ""
        self._full_text = ""
        self._last_edit_at = 0.0

    @classmethod
    def from_config(
        cls,
        messaging: MessagingClient,
        destination: MessageDestination,
        config: "FabricConfig",
    ) -> "ResponseRenderer":
        return cls(
            messaging,
            destination,
            edit_interval_ms=config.chat_edit_interval_ms,
            max_message_length=config.max_message_length,
            min_stream_length=config.min_stream_length,
            continuation_placeholder=config.continuation_placeholder,
        )

    @property
    def in_progress(self) -> bool:
        return self._message is not None or bool(self._text)

    @property
    def text(self) -> str:
        """Text accumulated for the current message (after any split)."""
        return self._text

    async def start(self, placeholder: str) -> None:
        """Post a placeholder message and begin accumulating.

        Raises:
            RendererStateError: If a message is already in progress.
            MessageTransportError: If the created message has no identity.
        """
        if self.in_progress:
            logger.error(
                "start called while a message is in progress message=%s text_length=%d",
                self._message,
                len(self._text),
            )
            raise RendererStateError(
                "Cannot start a new message while there is an in-progress message."
            )

        self._message = await self._create(placeholder)
        # The placeholder is replaced by the first edit, never accumulated
        self._text = ""
        self._full_text = ""
        self._last_edit_at = self._clock()

    async def append(self, fragment: str) -> None:
        """Add streamed text, editing the message if the throttle allows.

        Raises:
            RendererStateError: If ``start`` has not been called.
        """
        self._require_started("append")
        self._text += fragment
        self._full_text += fragment

        now = self._clock()
        if (
            self._elapsed_ms(now) >= self._edit_interval_ms
            and len(self._text) > self._min_stream_length
        ):
            await self._flush()
            self._last_edit_at = now

    async def finalize(self) -> FinalizedMessage:
        """Write everything accumulated and reset.

        Waits out any remaining cooldown first. A transport failure here is
        logged and reported as a result without identity rather than raised.

        Raises:
            RendererStateError: If ``start`` has not been called.
        """
        self._require_started("finalize")
        full_text = self._full_text

        try:
            while self._text:
                await self._wait_for_cooldown()
                split = await self._flush()
                self._last_edit_at = self._clock()
                if not split:
                    break
            message = self._message
        except Exception:
            logger.exception("Failed to finalize message text_length=%d", len(full_text))
            message = None
        finally:
            self._reset()

        if message is None:
            return FinalizedMessage(text=full_text)
        return FinalizedMessage(
            text=full_text,
            message_id=message.id,
            timestamp=message.timestamp,
            channel=message.channel,
        )

    def _reset(self) -> None:
        self._message = None
        self._text = ""
        self._full_text = ""

    def _require_started(self, operation: str) -> None:
        if self._message is None:
            raise RendererStateError(
                f"No message in progress; start() must be called before {operation}()."
            )

    def _elapsed_ms(self, now: float) -> float:
        return (now - self._last_edit_at) * 1000

    async def _wait_for_cooldown(self) -> None:
        remaining_ms = self._edit_interval_ms - self._elapsed_ms(self._clock())
        if remaining_ms > 0:
            await self._sleep(remaining_ms / 1000)

    async def _flush(self) -> bool:
        """Write the accumulated text to the current message.

        Oversized text is split at a newline: the prefix goes to the current
        message, a continuation message is posted with the placeholder, and
        the suffix becomes the accumulated text for the next write.

        Returns:
            True if the text was split and a remainder is still pending.
        """
        text = self._text
        if len(text) <= self._max_message_length:
            await self._edit(text)
            return False

        prefix, suffix = split_overflowing_text(text, self._max_message_length)
        if not suffix:
            # Unsplittable; written as-is
            await self._edit(prefix)
            return False

        await self._edit(prefix)
        logger.debug(
            "Split oversized message prefix_length=%d suffix_length=%d",
            len(prefix),
            len(suffix),
        )
        self._message = await self._create(self._continuation_placeholder)
        self._text = suffix
        return True

    async def _create(self, text: str) -> PostedMessage:
        posted = await self._messaging.create_message(self._destination, text)
        return self._checked(posted)

    async def _edit(self, text: str) -> None:
        message = self._message
        if message is None or not message.channel or not message.id:
            raise RendererStateError("No message in progress to edit.")
        posted = await self._messaging.edit_message(message.channel, message.id, text)
        self._message = self._checked(posted)

    def _checked(self, posted: PostedMessage) -> PostedMessage:
        if not posted.id or not posted.timestamp or not posted.channel:
            raise MessageTransportError(
                f"Failed to get id, timestamp or channel from message response: {posted!r}"
            )
        return posted
