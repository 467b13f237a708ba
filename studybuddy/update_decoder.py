"""Decode raw Telegram webhook bodies into IncomingMessage objects.

Only plain ``message`` updates are of interest. Everything else the Bot API
may deliver (edited messages, callback queries, keep-alive probes, garbage)
decodes to None and is acknowledged without further work.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingMessage:
    """One inbound chat message, normalised for routing."""

    chat_id: Optional[int]
    text: str = ""


def _extract_chat_id(message: dict) -> Optional[int]:
    chat = message.get("chat")
    if not isinstance(chat, dict):
        return None
    chat_id = chat.get("id")
    # bool is a subclass of int; a JSON true is not a chat id.
    if isinstance(chat_id, bool) or not isinstance(chat_id, int):
        return None
    return chat_id


def decode_update(raw: Union[bytes, str, dict, None]) -> Optional[IncomingMessage]:
    """Parse a webhook body into an IncomingMessage.

    Args:
        raw: The request body as bytes/str, or an already-decoded dict.

    Returns:
        None when the body is not a message update at all (ignore it),
        otherwise an IncomingMessage whose chat_id may still be None when
        the message carries no usable chat identifier.
    """
    if isinstance(raw, dict):
        update: Any = raw
    else:
        if not raw:
            return None
        try:
            update = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring undecodable webhook body: {e}")
            return None

    if not isinstance(update, dict):
        return None

    message = update.get("message")
    if not isinstance(message, dict):
        return None

    text = message.get("text")
    if not isinstance(text, str):
        text = ""

    return IncomingMessage(chat_id=_extract_chat_id(message), text=text.strip())
