"""Per-invocation collaborators handed to every command handler."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from ..config import RelayConfig
from ..link_codes import utcnow


@dataclass
class RelayContext:
    """Everything a handler may touch while answering one update.

    Built once per webhook invocation from RelayConfig and discarded
    afterwards; nothing here outlives the request.

    Attributes:
        config: Settings read at the start of the invocation.
        responder: Object with ``async send(chat_id, text, parse_mode=...)``,
            or None when TELEGRAM_BOT_TOKEN is unset.
        store: Data/Linking store, or None when GOOGLE_CLOUD_PROJECT is unset.
        generator: Insight generator, or None when GEMINI_API_KEY is unset.
        clock: Returns the current aware UTC time (overridden in tests).
    """

    config: RelayConfig
    responder: Optional[Any]
    store: Optional[Any] = None
    generator: Optional[Any] = None
    clock: Callable[[], datetime] = field(default=utcnow)
