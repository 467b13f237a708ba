"""Admin-only commands: /stats and /insights.

Both re-check the admin identity themselves and stay silent for anyone
else, so a probing chat cannot tell an admin command from an unknown one.
"""
import logging

from .. import messages
from ..config import is_admin
from ..constants import INSIGHTS_HISTORY_LIMIT
from ..errors import DataStoreError
from ..insights import build_insights_prompt, summarize_records
from ..update_decoder import IncomingMessage
from .context import RelayContext

logger = logging.getLogger(__name__)


async def admin_stats(message: IncomingMessage, context: RelayContext) -> str:
    """Handle /stats - reply with total student and quiz counts."""
    if not is_admin(message.chat_id, context.config):
        logger.info(f"Ignoring /stats from non-admin chat {message.chat_id}")
        return "unauthorized"

    if context.store is None:
        await context.responder.send(message.chat_id, messages.DATA_STORE_NOT_CONFIGURED)
        return "missing db keys"

    try:
        student_count = await context.store.count_students()
        quiz_count = await context.store.count_quizzes()
    except DataStoreError as e:
        logger.error(f"Failed to load stats: {e}")
        await context.responder.send(message.chat_id, messages.TRY_AGAIN_LATER)
        return "store error"

    await context.responder.send(
        message.chat_id,
        messages.STATS.format(students=student_count or 0, quizzes=quiz_count or 0),
    )
    return "ok"


async def admin_insights(message: IncomingMessage, context: RelayContext) -> str:
    """Handle /insights - AI digest of the most recent quiz attempts.

    The "working on it" acknowledgement is sent only once a generation call
    is actually about to start: an empty history or a missing AI key each
    produce exactly one reply.
    """
    chat_id = message.chat_id
    if not is_admin(chat_id, context.config):
        logger.info(f"Ignoring /insights from non-admin chat {chat_id}")
        return "unauthorized"

    if context.store is None:
        await context.responder.send(chat_id, messages.DATA_STORE_NOT_CONFIGURED)
        return "missing db keys"

    try:
        records = await context.store.recent_quizzes(INSIGHTS_HISTORY_LIMIT)
    except DataStoreError as e:
        logger.error(f"Failed to load quiz history for insights: {e}")
        await context.responder.send(chat_id, messages.TRY_AGAIN_LATER)
        return "store error"

    if not records:
        await context.responder.send(chat_id, messages.INSIGHTS_NO_DATA)
        return "no data"

    if context.generator is None:
        logger.error("GEMINI_API_KEY is not set; cannot generate insights")
        await context.responder.send(chat_id, messages.INSIGHTS_NO_CREDENTIAL)
        return "missing ai key"

    await context.responder.send(chat_id, messages.INSIGHTS_WORKING)

    prompt = build_insights_prompt(summarize_records(records))
    result = await context.generator.generate(prompt)

    if not result.ok:
        logger.error(
            f"Insight generation failed: status={result.status_code} "
            f"message={result.error_message}"
        )
        await context.responder.send(
            chat_id, messages.provider_error(result.status_code, result.error_message)
        )
        return "ai error"

    insight_text = (result.text or "").strip()
    if not insight_text:
        await context.responder.send(chat_id, messages.INSIGHTS_EMPTY)
        return "ai empty"

    await context.responder.send(chat_id, messages.INSIGHTS_BANNER + insight_text)
    logger.info(f"Sent insights digest for {len(records)} quiz records")
    return "ok"
