"""Input validation utilities for relay commands and HTTP endpoints."""
import re
from typing import Any, Dict

from .constants import MAX_LINK_CODE_LENGTH, MAX_SUMMARY_LENGTH
from .errors import ValidationError

_LINK_CODE_PATTERN = re.compile(rf"^[A-Za-z0-9]{{1,{MAX_LINK_CODE_LENGTH}}}$")


def validate_user_id(user_id: Any) -> Dict[str, Any]:
    """Validate a student account identifier.

    Args:
        user_id: Student profile id (Firestore document id)

    Returns:
        Validation result dict

    Raises:
        ValidationError: If validation fails
    """
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("userId must be a non-empty string")

    user_id = user_id.strip()
    if not user_id:
        raise ValidationError("userId cannot be empty or whitespace")

    if "/" in user_id:
        raise ValidationError("userId must not contain '/'")

    return {"valid": True, "user_id": user_id}


def validate_link_code(code: str) -> Dict[str, Any]:
    """Validate the format of a parent link code.

    Generated codes are numeric, but any short alphanumeric token is
    accepted so codes issued by older app builds still resolve. Anything
    else (slashes, spaces, very long input) can never be a stored code.

    Args:
        code: Code typed by the parent after /start

    Returns:
        Validation result dict

    Raises:
        ValidationError: If the code cannot be a stored code
    """
    if not code or not isinstance(code, str):
        raise ValidationError("Link code must be a non-empty string")

    code = code.strip()
    if not _LINK_CODE_PATTERN.match(code):
        raise ValidationError(
            f"Link code must be 1-{MAX_LINK_CODE_LENGTH} letters or digits"
        )

    return {"valid": True, "code": code}


def validate_notification(body: Any) -> Dict[str, Any]:
    """Validate a parent notification request body.

    Args:
        body: Decoded JSON body with userId, eventType and summary

    Returns:
        Validation result dict with the cleaned fields

    Raises:
        ValidationError: If userId or summary is missing
    """
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")

    user_id = body.get("userId")
    summary = body.get("summary")
    if not user_id or not summary:
        raise ValidationError("userId and summary required")

    user_id = validate_user_id(user_id)["user_id"]

    if not isinstance(summary, str):
        raise ValidationError("summary must be a string")
    if len(summary) > MAX_SUMMARY_LENGTH:
        raise ValidationError(f"summary too long (max: {MAX_SUMMARY_LENGTH} characters)")

    event_type = body.get("eventType") or ""
    if not isinstance(event_type, str):
        raise ValidationError("eventType must be a string")

    return {
        "valid": True,
        "user_id": user_id,
        "event_type": event_type.strip(),
        "summary": summary,
    }
