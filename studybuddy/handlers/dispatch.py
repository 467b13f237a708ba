"""Route a decoded message to its command handler."""
from ..command_router import Intent, RoutedCommand, route
from ..update_decoder import IncomingMessage
from .admin import admin_insights, admin_stats
from .context import RelayContext
from .identity import who_am_i
from .linking import link_account


async def dispatch(message: IncomingMessage, context: RelayContext) -> tuple[RoutedCommand, str]:
    """Run the handler for message's intent.

    Returns:
        The routed command and the handler's short outcome string, which
        becomes the informational body of the webhook acknowledgement.
    """
    command = route(message.text)

    if command.intent is Intent.WHO_AM_I:
        outcome = await who_am_i(message, context)
    elif command.intent is Intent.ADMIN_STATS:
        outcome = await admin_stats(message, context)
    elif command.intent is Intent.ADMIN_INSIGHTS:
        outcome = await admin_insights(message, context)
    elif command.intent is Intent.LINK_ACCOUNT:
        outcome = await link_account(message, command.argument, context)
    else:
        outcome = "ok"

    return command, outcome
