"""Pydantic schemas for browser sessions and the virtualized grid."""
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field

from models.column import ColumnMeta, ForeignKeyHint
from models.errors import ClassifiedError
from models.quality import DataQualityIssue


class VirtualWindow(BaseModel):
    start: int = 0          # inclusive
    end: int = 0            # exclusive
    pad_top: float = 0      # px
    pad_bottom: float = 0   # px


class SessionCreateRequest(BaseModel):
    owner_id: Optional[str] = None


class OpenTableRequest(BaseModel):
    table_name: str


class RowQueryRequest(BaseModel):
    page: Optional[int] = Field(None, ge=1)
    page_size: Optional[int] = Field(None, ge=1, le=500)
    sort_column: Optional[str] = None
    sort_direction: Optional[Literal["asc", "desc"]] = None
    search: Optional[str] = None


class ScrollRequest(BaseModel):
    scroll_top: float = Field(0, ge=0)
    viewport_height: float = Field(..., ge=0)


class CellEditRequest(BaseModel):
    row_index: int = Field(..., ge=0)
    column: str
    value: Any = None


class CreateRowRequest(BaseModel):
    values: dict[str, Any]


class FollowReferenceRequest(BaseModel):
    column: str


class SessionState(BaseModel):
    session_id: str
    table_name: Optional[str] = None
    columns: list[ColumnMeta] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyHint] = Field(default_factory=list)
    quality_issues: list[DataQualityIssue] = Field(default_factory=list)
    page: int = 1
    page_size: int = 25
    total_count: Optional[int] = None
    total_pages: int = 1
    can_prev: bool = False
    can_next: bool = False
    sort_column: Optional[str] = None
    sort_direction: Literal["asc", "desc"] = "asc"
    search: str = ""
    rows_error: Optional[str] = None
    save_error: Optional[ClassifiedError] = None
    window: VirtualWindow = Field(default_factory=VirtualWindow)
    visible_rows: list[dict[str, Any]] = Field(default_factory=list)
    can_undo_delete: bool = False


class RowDetail(BaseModel):
    row_index: int
    row: dict[str, Any]
    rendered: str
    references: list[dict[str, Any]] = Field(default_factory=list)   # [{column, ref, value}]
