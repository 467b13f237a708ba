"""/start <code>: link a parent's chat to a student account."""
import logging

from .. import messages
from ..errors import DataStoreError, ValidationError
from ..update_decoder import IncomingMessage
from ..validation import validate_link_code
from .context import RelayContext

logger = logging.getLogger(__name__)


async def link_account(message: IncomingMessage, code: str, context: RelayContext) -> str:
    """Redeem a single-use link code.

    Unknown, expired, already-used and malformed codes all get the same
    reply so a chat cannot learn which codes ever existed. The store claims
    the code and writes the profile atomically; if that write fails the
    code is left in place and the parent may try again.
    """
    chat_id = message.chat_id

    if not code:
        await context.responder.send(chat_id, messages.LINK_INSTRUCTIONS)
        return "instructions"

    try:
        code = validate_link_code(code)["code"]
    except ValidationError as e:
        logger.info(f"Rejected malformed link code from chat {chat_id}: {e}")
        await context.responder.send(chat_id, messages.LINK_INVALID)
        return "invalid code"

    if context.store is None:
        await context.responder.send(chat_id, messages.DATA_STORE_NOT_CONFIGURED)
        return "missing db keys"

    try:
        user_id = await context.store.link_parent_chat(code, chat_id, context.clock())
    except DataStoreError as e:
        logger.error(f"Failed to link chat {chat_id}: {e}")
        await context.responder.send(chat_id, messages.LINK_FAILED)
        return "link error"

    if user_id is None:
        logger.info(f"Invalid or expired link code from chat {chat_id}")
        await context.responder.send(chat_id, messages.LINK_INVALID)
        return "invalid code"

    logger.info(f"Linked parent chat {chat_id} to student {user_id}")
    await context.responder.send(chat_id, messages.LINK_SUCCESS)
    return "linked"
