"""
Optimistic mutation helpers.

An edit is applied locally first and recorded as an OptimisticEdit snapshot.
Reverting is a pure function of (snapshot, current rows), so it never depends
on intermediate state. Only one edit may be outstanding at a time.
"""
import logging
import threading
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from core.exceptions import EditInProgressError, MissingIdentityError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class OptimisticEdit(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int
    column: str
    previous_row: Row
    previous_value: Any = None
    new_value: Any = None

    @property
    def row_id(self) -> Any:
        return self.previous_row.get("id")


class DeletedRow(BaseModel):
    table_name: str
    row: Row


def require_row_id(row: Row) -> Any:
    row_id = row.get("id")
    if row_id is None:
        raise MissingIdentityError("Row has no primary key (id); it cannot be changed.")
    return row_id


def apply_optimistic_update(
    rows: list[Row], row_index: int, column: str, new_value: Any
) -> tuple[list[Row], OptimisticEdit]:
    """Return a new row list with one cell replaced, plus the snapshot needed to undo it."""
    if not 0 <= row_index < len(rows):
        raise IndexError(f"Row index {row_index} out of range (0..{len(rows) - 1})")
    target = rows[row_index]
    edit = OptimisticEdit(
        row_index=row_index,
        column=column,
        previous_row=dict(target),
        previous_value=target.get(column),
        new_value=new_value,
    )
    new_rows = [({**r, column: new_value} if i == row_index else r) for i, r in enumerate(rows)]
    return new_rows, edit


def _current_id(edit: OptimisticEdit) -> Any:
    # An edit of the id column itself changes the identity the row is found by
    return edit.new_value if edit.column == "id" else edit.row_id


def _locate(edit: OptimisticEdit, rows: list[Row]) -> Optional[int]:
    current_id = _current_id(edit)
    if 0 <= edit.row_index < len(rows) and rows[edit.row_index].get("id") == current_id:
        return edit.row_index
    if current_id is None:
        return None
    for i, r in enumerate(rows):
        if r.get("id") == current_id:
            return i
    return None


def revert_edit(edit: OptimisticEdit, rows: list[Row]) -> list[Row]:
    """Put the snapshot's previous value back into `rows` (returns a new list)."""
    idx = _locate(edit, rows)
    if idx is None:
        logger.debug("Revert target for %s no longer visible", edit.column)
        return list(rows)
    restored = dict(rows[idx])
    if edit.column in edit.previous_row:
        restored[edit.column] = edit.previous_value
    else:
        restored.pop(edit.column, None)
    return [restored if i == idx else r for i, r in enumerate(rows)]


class EditController:
    """Tracks the single outstanding optimistic edit."""

    def __init__(self):
        self._pending: Optional[OptimisticEdit] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> Optional[OptimisticEdit]:
        return self._pending

    def begin(self, rows: list[Row], row_index: int, column: str, new_value: Any) -> list[Row]:
        with self._lock:
            if self._pending is not None:
                raise EditInProgressError("Another edit is still being saved.")
            new_rows, edit = apply_optimistic_update(rows, row_index, column, new_value)
            self._pending = edit
        return new_rows

    def settle(self) -> None:
        with self._lock:
            self._pending = None

    def rollback(self, rows: list[Row]) -> list[Row]:
        with self._lock:
            edit, self._pending = self._pending, None
        if edit is None:
            return list(rows)
        return revert_edit(edit, rows)
