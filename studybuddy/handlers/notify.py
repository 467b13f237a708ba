"""Activity alerts pushed to a student's linked parent and the admin monitor."""
import asyncio
import html
import logging
from typing import Any, Dict

from .. import messages
from ..constants import DEFAULT_EVENT_EMOJI, EVENT_EMOJI
from .context import RelayContext

logger = logging.getLogger(__name__)


def build_activity_alert(event_type: str, summary: str) -> str:
    """Wrap an app-provided summary in the alert header.

    The summary is produced by the app and may already contain HTML tags,
    so it is passed through unchanged.
    """
    emoji = EVENT_EMOJI.get(event_type, DEFAULT_EVENT_EMOJI)
    return messages.ACTIVITY_ALERT.format(emoji=emoji, summary=summary)


def build_monitor_alert(student_name: str | None, alert: str) -> str:
    return messages.GLOBAL_MONITOR.format(
        student=html.escape(student_name or "Anonymous"), alert=alert
    )


async def notify_parent(
    user_id: str, event_type: str, summary: str, context: RelayContext
) -> Dict[str, Any]:
    """Send an activity alert to the student's parent and to the admin chat.

    Args:
        user_id: Student profile id.
        event_type: "quiz_complete", "practice_complete" or any other label.
        summary: Pre-formatted activity summary from the app.
        context: Per-request collaborators; context.store must be set.

    Returns:
        {"ok": False, "reason": "no recipients"} when neither a linked parent
        nor an admin chat exists, otherwise {"ok": True, "sent": n} with the
        number of messages actually delivered.
    """
    parent_chat_id, full_name = await context.store.parent_chat_for(user_id)
    admin_chat_id = context.config.admin_chat_id

    logger.info(
        f"notify-parent: user={user_id}, parent_chat={parent_chat_id or 'none'}, "
        f"event={event_type or 'unknown'}"
    )

    if not parent_chat_id and not admin_chat_id:
        logger.warning(f"No parent or admin chat to notify for user {user_id}")
        return {"ok": False, "reason": "no recipients"}

    alert = build_activity_alert(event_type, summary)
    sends = []
    if parent_chat_id:
        sends.append(context.responder.send(parent_chat_id, alert))
    if admin_chat_id:
        sends.append(context.responder.send(admin_chat_id, build_monitor_alert(full_name, alert)))

    # Parent and admin alerts go out concurrently.
    delivered = await asyncio.gather(*sends)
    return {"ok": True, "sent": sum(1 for ok in delivered if ok)}
