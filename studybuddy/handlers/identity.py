"""/myid: tell the operator which chat id to configure as admin."""
import logging

from .. import messages
from ..update_decoder import IncomingMessage
from .context import RelayContext

logger = logging.getLogger(__name__)


async def who_am_i(message: IncomingMessage, context: RelayContext) -> str:
    """Reply with the caller's chat id. Needs no store and no authorization."""
    logger.info(f"/myid requested by chat {message.chat_id}")
    await context.responder.send(
        message.chat_id, messages.WHO_AM_I.format(chat_id=message.chat_id)
    )
    return "ok"
