"""Map message text to a command intent.

Routing is a pure function of the text. Admin checks and code lookups
happen later in the handlers so this module stays trivially testable.
"""
import enum
from dataclasses import dataclass

from .constants import COMMAND_INSIGHTS, COMMAND_MY_ID, COMMAND_START, COMMAND_STATS


class Intent(enum.Enum):
    WHO_AM_I = "myid"
    ADMIN_STATS = "stats"
    ADMIN_INSIGHTS = "insights"
    LINK_ACCOUNT = "start"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class RoutedCommand:
    intent: Intent
    # Candidate link code for LINK_ACCOUNT; empty means "show instructions".
    argument: str = ""


# Exact-match commands, checked in order before the /start prefix.
_EXACT_COMMANDS = (
    (COMMAND_MY_ID, Intent.WHO_AM_I),
    (COMMAND_STATS, Intent.ADMIN_STATS),
    (COMMAND_INSIGHTS, Intent.ADMIN_INSIGHTS),
)


def route(text: str) -> RoutedCommand:
    """Classify already-trimmed message text. First match wins."""
    text = text or ""
    for command, intent in _EXACT_COMMANDS:
        if text == command:
            return RoutedCommand(intent)

    if text[:len(COMMAND_START)].lower() == COMMAND_START:
        remainder = text[len(COMMAND_START):]
        # Group chats send "/start@BotName <code>".
        if remainder.startswith("@"):
            parts = remainder.split(maxsplit=1)
            remainder = parts[1] if len(parts) > 1 else ""
        return RoutedCommand(Intent.LINK_ACCOUNT, remainder.strip())

    return RoutedCommand(Intent.UNHANDLED)
