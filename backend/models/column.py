"""Pydantic schemas for inferred column metadata."""
from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ColumnType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
    ARRAY = "array"
    DATE = "date"
    UUID = "uuid"
    STRING = "string"
    UNKNOWN = "unknown"


class ColumnMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ColumnType
    nullable: bool = True
    sample_value: Optional[Any] = None
    # Naming-convention guess ("customer_id" -> "customers"), never checked against a catalog
    foreign_key_ref: Optional[str] = None
    missing_fraction: Optional[float] = Field(None, ge=0.0, le=1.0)


class ForeignKeyHint(BaseModel):
    column: str
    ref: str
    verified: Literal[False] = False


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    columns: tuple[ColumnMeta, ...]
    fetched_at: float
    signature: Optional[str] = None


class DurableCacheEntry(CacheEntry):
    version: int
