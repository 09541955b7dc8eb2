"""
Error classifier — maps row store failures to a small set of user-facing categories.
Codes are checked before message patterns; unmatched errors keep their raw message.
"""
import json
import re
from typing import Any, Optional

from models.errors import ClassifiedError, ErrorCategory

# (category, code, message pattern, user message); first match wins
_RULES: list[tuple[ErrorCategory, Optional[str], Optional[re.Pattern], str]] = [
    (ErrorCategory.DUPLICATE_KEY, "23505", re.compile(r"duplicate key value", re.I),
     "Data conflict (duplicate key)."),
    (ErrorCategory.FOREIGN_KEY_VIOLATION, "23503", re.compile(r"foreign key", re.I),
     "Foreign key violated (referenced row does not exist)."),
    (ErrorCategory.PERMISSION_DENIED, "42501", re.compile(r"not authorized|permission denied", re.I),
     "Permission denied (row-level security / policy)."),
    (ErrorCategory.INVALID_INPUT_SYNTAX, "22P02", re.compile(r"invalid input syntax", re.I),
     "Invalid input format."),
    (ErrorCategory.TIMEOUT, None, re.compile(r"timeout|timed out", re.I),
     "The request timed out."),
    (ErrorCategory.NETWORK, None, re.compile(r"network", re.I),
     "Network error, please check the connection."),
]

_USER_MESSAGES = {category: message for category, _, _, message in _RULES}


def _code_of(err: Any) -> str:
    if isinstance(err, dict):
        code = err.get("code") or err.get("status")
    else:
        code = getattr(err, "code", None) or getattr(err, "status", None)
    return str(code) if code else ""


def _message_of(err: Any) -> str:
    if isinstance(err, dict):
        msg = err.get("message")
    else:
        msg = getattr(err, "message", None)
    return str(msg) if msg else str(err)


def classify_error(err: Any) -> ClassifiedError:
    if err is None:
        return ClassifiedError(category=ErrorCategory.UNKNOWN, message="Unknown error")
    if isinstance(err, TimeoutError):
        return ClassifiedError(
            category=ErrorCategory.TIMEOUT,
            message=_USER_MESSAGES[ErrorCategory.TIMEOUT],
            raw_message=str(err) or "timeout",
        )

    code = _code_of(err)
    message = _message_of(err)
    if code:
        for category, rule_code, _, user_message in _RULES:
            if rule_code == code:
                return ClassifiedError(category=category, message=user_message, raw_message=message)
    for category, _, pattern, user_message in _RULES:
        if pattern is not None and pattern.search(message):
            return ClassifiedError(category=category, message=user_message, raw_message=message)
    return ClassifiedError(category=ErrorCategory.UNKNOWN, message=message, raw_message=message)


def describe_error(err: Any) -> str:
    return classify_error(err).message


def safe_stringify(value: Any, max_len: int = 500) -> str:
    try:
        s = value if isinstance(value, str) else json.dumps(value, default=str)
    except (TypeError, ValueError):
        s = str(value)
    return s[:max_len] + "…" if len(s) > max_len else s
