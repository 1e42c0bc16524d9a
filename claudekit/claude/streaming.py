"""Streaming responses to Telegram with throttling and HTML tag balancing."""
import asyncio
import logging
import re
import time

from telegram import Message
from telegram.error import BadRequest, TimedOut

from claudekit.utils.html import balance_tags, find_open_tags

logger = logging.getLogger(__name__)

TRUNCATION_PREFIX = "[...]\n"


def safe_truncate_html(text: str, max_length: int, prefix: str = "") -> str:
    """Keep the tail of HTML text without breaking tags.

    Args:
        text: HTML text to truncate.
        max_length: Maximum length including prefix.
        prefix: Text to prepend (e.g., "[...]").

    Returns:
        Truncated and balanced HTML.
    """
    if len(text) <= max_length:
        return text

    # Reserve space for reopened and closing tags
    tag_buffer = 60
    available = max_length - len(prefix) - tag_buffer
    if available < 50:
        available = max_length - len(prefix) - 20

    truncate_point = max(0, len(text) - available)
    truncated = text[truncate_point:]

    # Skip a partial tag at the cut
    first_gt = truncated.find(">")
    first_lt = truncated.find("<")
    if first_lt != -1 and first_gt != -1 and first_gt < first_lt:
        truncated = truncated[first_gt + 1:]
    elif first_lt == -1 and first_gt != -1:
        truncated = truncated[first_gt + 1:]

    open_at_truncation = find_open_tags(text[:truncate_point])
    if open_at_truncation:
        truncated = "".join(f"<{tag}>" for tag in open_at_truncation) + truncated

    balanced = balance_tags(truncated)
    return f"{prefix}{balanced}" if prefix else balanced


class MessageStreamer:
    """Streams Claude responses to a Telegram message with throttling.

    Accumulates text and periodically edits the Telegram message, keeping
    only the latest chunk_size characters visible. Falls back to plain text
    when Telegram rejects the HTML.
    """

    def __init__(
        self,
        message: Message,
        throttle_ms: int = 1000,
        chunk_size: int = 3800,
    ):
        """Initialize streamer.

        Args:
            message: Telegram message to edit with updates.
            throttle_ms: Minimum milliseconds between message edits.
            chunk_size: Maximum characters to display (Telegram limit ~4096).
        """
        self.message = message
        self.throttle_ms = throttle_ms
        self.chunk_size = chunk_size
        self.current_text = ""
        self._last_edit_time: float = 0
        self._pending_flush: bool = False
        self._lock = asyncio.Lock()
        self._fallback_to_plain: bool = False

    async def append_text(self, text: str) -> None:
        """Append text and flush if the throttle allows."""
        async with self._lock:
            self.current_text += text
            await self._maybe_flush()

    async def _maybe_flush(self) -> None:
        now = time.time() * 1000
        elapsed = now - self._last_edit_time

        if elapsed >= self.throttle_ms:
            await self._do_flush()
        elif not self._pending_flush:
            self._pending_flush = True
            asyncio.create_task(self._delayed_flush())

    async def _delayed_flush(self) -> None:
        await asyncio.sleep(self.throttle_ms / 1000)
        try:
            async with self._lock:
                if self._pending_flush:
                    await self._do_flush()
        except BadRequest as e:
            # Next flush will retry
            logger.debug(f"Delayed flush failed: {e}")

    async def _do_flush(self) -> None:
        """Send the edit to Telegram."""
        if not self.current_text:
            return

        display_text = self._get_display_text()
        parse_mode = None if self._fallback_to_plain else "HTML"

        try:
            await self.message.edit_text(display_text, parse_mode=parse_mode)
            self._last_edit_time = time.time() * 1000
            self._pending_flush = False
        except BadRequest as e:
            error_msg = str(e).lower()
            if "not modified" in error_msg:
                self._pending_flush = False
                return
            if "parse entities" in error_msg or "can't parse" in error_msg:
                logger.warning(f"HTML rejected, falling back to plain text: {e}")
                self._fallback_to_plain = True
                plain_text = re.sub(r"<[^>]+>", "", display_text)
                await self.message.edit_text(plain_text, parse_mode=None)
                self._last_edit_time = time.time() * 1000
                self._pending_flush = False
            else:
                raise
        except TimedOut:
            logger.debug("Telegram edit timed out, will retry on next flush")

    def _get_display_text(self) -> str:
        """Text for display, truncated and balanced if needed."""
        text = self.current_text

        if not self._fallback_to_plain:
            if len(text) <= self.chunk_size:
                return balance_tags(text)
            return safe_truncate_html(text, self.chunk_size, prefix=TRUNCATION_PREFIX)

        if len(text) <= self.chunk_size:
            return text
        return f"{TRUNCATION_PREFIX}{text[-(self.chunk_size - len(TRUNCATION_PREFIX)):]}"

    async def flush(self) -> None:
        """Force flush current content to Telegram."""
        async with self._lock:
            await self._do_flush()
