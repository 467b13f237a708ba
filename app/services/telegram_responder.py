"""Outbound replies through the Telegram Bot API.

Delivery is best effort: failures are logged and reported as False, never
raised, because the inbound webhook must be acknowledged regardless.
"""
import asyncio
import logging
import re

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.request import HTTPXRequest

from app.metrics import REPLY_TOTAL
from studybuddy.constants import DEFAULT_SEND_TIMEOUT, TELEGRAM_MAX_MESSAGE_LENGTH

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
FORMAT_ERROR_PREFIX = "⚠️ (Format Error - Sending as plain text)\n\n"


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", text)


def split_message(text: str, limit: int = TELEGRAM_MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into chunks Telegram will accept.

    Prefers to break on a newline inside the window so HTML tags opened on
    one line are less likely to be split across messages.
    """
    chunks = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks


class TelegramResponder:
    """Sends replies to a chat, falling back to plain text on markup errors."""

    def __init__(self, bot_token: str = "", timeout: float = DEFAULT_SEND_TIMEOUT, bot=None):
        """Initialize the responder.

        Args:
            bot_token: Telegram bot token (from @BotFather).
            timeout: Connect/read/write timeout in seconds for each send.
            bot: Pre-built telegram.Bot, used instead of bot_token when given.
        """
        self._timeout = timeout
        self._requests = []
        if bot is None:
            # Bot builds a second request object for getUpdates; both are
            # owned here so close() can release their connection pools.
            self._requests = [
                HTTPXRequest(
                    connect_timeout=timeout,
                    read_timeout=timeout,
                    write_timeout=timeout,
                    pool_timeout=timeout,
                ),
                HTTPXRequest(),
            ]
            bot = Bot(
                token=bot_token,
                request=self._requests[0],
                get_updates_request=self._requests[1],
            )
        self.bot = bot

    async def _send_once(self, chat_id, text: str, parse_mode) -> None:
        await asyncio.wait_for(
            self.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode),
            timeout=self._timeout,
        )

    async def _send_chunk(self, chat_id, text: str, parse_mode) -> bool:
        try:
            await self._send_once(chat_id, text, parse_mode)
            REPLY_TOTAL.labels(status="sent").inc()
            return True
        except BadRequest as e:
            if parse_mode != ParseMode.HTML:
                logger.error(f"Telegram rejected message to {chat_id}: {e}")
                REPLY_TOTAL.labels(status="failed").inc()
                return False
            logger.warning(f"HTML rejected for chat {chat_id} ({e}); retrying as plain text")
        except (TelegramError, asyncio.TimeoutError) as e:
            logger.error(f"Telegram send to {chat_id} failed: {e!r}")
            REPLY_TOTAL.labels(status="failed").inc()
            return False

        try:
            await self._send_once(chat_id, FORMAT_ERROR_PREFIX + strip_tags(text), None)
            REPLY_TOTAL.labels(status="plain_fallback").inc()
            return True
        except (TelegramError, asyncio.TimeoutError) as e:
            logger.error(f"Plain-text fallback to {chat_id} failed: {e!r}")
            REPLY_TOTAL.labels(status="failed").inc()
            return False

    async def send(self, chat_id, text: str, parse_mode=ParseMode.HTML) -> bool:
        """Deliver text to chat_id, splitting at Telegram's length limit.

        Returns:
            True if every chunk was delivered (possibly as plain text).
        """
        if chat_id is None or not text:
            return False
        delivered = True
        for chunk in split_message(text):
            delivered = await self._send_chunk(chat_id, chunk, parse_mode) and delivered
        return delivered

    async def get_me(self):
        return await self.bot.get_me()

    async def close(self) -> None:
        for request in self._requests:
            await request.shutdown()
        self._requests = []

    async def __aenter__(self) -> "TelegramResponder":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
