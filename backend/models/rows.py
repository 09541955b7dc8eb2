"""Pydantic schemas for row store requests and results."""
from typing import Any, Optional
from pydantic import BaseModel, Field


class SortSpec(BaseModel):
    column: str
    ascending: bool = True


class SearchSpec(BaseModel):
    pattern: str
    columns: list[str] = Field(default_factory=list)


class RowPage(BaseModel):
    rows: list[dict[str, Any]]
    total_count: int


class TableCount(BaseModel):
    table_name: str
    row_count: Optional[int] = None
    error: Optional[str] = None
