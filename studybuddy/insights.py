"""Prompt construction for the admin AI insights digest."""
import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .messages import INSIGHTS_SYSTEM_INSTRUCTION


@dataclass(frozen=True)
class InsightResult:
    """Outcome of one text-completion call.

    ok is False for provider errors (non-success HTTP status or timeout); in
    that case status_code and error_message describe the failure. A
    successful call may still carry an empty text.
    """

    ok: bool
    status_code: int = 200
    text: str = ""
    error_message: Optional[str] = None


def _percentage(score: Any, total: Any) -> str:
    try:
        score = float(score)
        total = float(total)
    except (TypeError, ValueError):
        return "0%"
    if not math.isfinite(total) or total <= 0:
        return "0%"
    percent = score / total * 100
    # NaN and infinite scores cannot be shown as a percentage.
    if not math.isfinite(percent):
        return "0%"
    # Half-up like the app's dashboards, not Python's banker's rounding.
    return f"{int(percent + 0.5)}%"


def _date_part(created_at: Any) -> str:
    if isinstance(created_at, datetime):
        return created_at.date().isoformat()
    if isinstance(created_at, date):
        return created_at.isoformat()
    if isinstance(created_at, str):
        return created_at.split("T")[0]
    return ""


def summarize_records(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce raw quiz rows to the compact shape sent to the model."""
    return [
        {
            "subject": record.get("subject"),
            "percentage": _percentage(record.get("score"), record.get("total_questions")),
            "topics": record.get("topics"),
            "date": _date_part(record.get("created_at")),
        }
        for record in records
    ]


def build_insights_prompt(summary: List[Dict[str, Any]]) -> str:
    return INSIGHTS_SYSTEM_INSTRUCTION.format(
        data=json.dumps(summary, ensure_ascii=False, default=str)
    )
