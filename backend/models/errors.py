"""Pydantic schemas for user-facing error categories."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class ErrorCategory(str, Enum):
    DUPLICATE_KEY = "duplicate_key"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    PERMISSION_DENIED = "permission_denied"
    INVALID_INPUT_SYNTAX = "invalid_input_syntax"
    TIMEOUT = "timeout"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ClassifiedError(BaseModel):
    category: ErrorCategory
    message: str                    # shown to the user
    raw_message: Optional[str] = None
