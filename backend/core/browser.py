"""
Browser session — the control flow of one grid view.

select table → column metadata (cached) → quality findings → page fetch with
paging/sort/search → virtual window on scroll → optimistic edits and
delete/undo. Results of a load that has been superseded by a newer one are
dropped instead of applied.
"""
import json
import logging
import re
import threading
import time
import uuid
from typing import Any, Callable, Literal, Optional

from core.data_quality import compute_data_quality_issues
from core.error_classifier import classify_error
from core.exceptions import NoTableSelectedError, RowStoreError
from core.metadata_cache import MetadataCache
from core.mutations import DeletedRow, EditController, require_row_id
from core.row_store import RowStore
from core.type_classifier import extract_foreign_keys
from core.virtual_window import compute_virtual_window, visible_slice
from models.browse import RowDetail, SessionState, VirtualWindow
from models.column import ColumnMeta, ColumnType, ForeignKeyHint
from models.errors import ClassifiedError
from models.quality import DataQualityIssue
from models.rows import SearchSpec, SortSpec

logger = logging.getLogger(__name__)

_OWNER_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

# Columns the store fills in itself
CREATE_EXCLUDED_COLUMNS = ("id", "created_at", "updated_at", "user_id")


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_OWNER_UUID_RE.match(value))


class SearchDebounce:
    """Holds back search text until it has been stable for `delay_seconds`."""

    def __init__(self, delay_seconds: float = 0.4, clock: Callable[[], float] = time.monotonic):
        self.delay_seconds = delay_seconds
        self.clock = clock
        self._value = ""
        self._pending: Optional[str] = None
        self._changed_at = 0.0

    @property
    def value(self) -> str:
        return self._value

    def set(self, text: str) -> None:
        self._pending = text
        self._changed_at = self.clock()

    def flush(self) -> str:
        if self._pending is not None:
            self._value, self._pending = self._pending, None
        return self._value

    def current(self) -> str:
        if self._pending is not None and self.clock() - self._changed_at >= self.delay_seconds:
            return self.flush()
        return self._value


class BrowserSession:
    def __init__(
        self,
        store: RowStore,
        cache: MetadataCache,
        owner_id: Optional[str] = None,
        session_id: Optional[str] = None,
        page_size: int = 25,
        row_height: float = 32,
        overscan: int = 6,
        search_max_columns: int = 4,
        debounce_seconds: float = 0.4,
        owner_column: str = "user_id",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.store = store
        self.cache = cache
        self.owner_id = owner_id
        self.owner_column = owner_column
        self.row_height = row_height
        self.overscan = overscan
        self.search_max_columns = search_max_columns

        self.table_name: Optional[str] = None
        self.columns: list[ColumnMeta] = []
        self.foreign_keys: list[ForeignKeyHint] = []
        self.quality_issues: list[DataQualityIssue] = []

        self.rows: list[dict[str, Any]] = []
        self.rows_error: Optional[str] = None
        self.total_count: Optional[int] = None
        self.page = 1
        self.page_size = page_size
        self.sort_column: Optional[str] = None
        self.sort_direction: Literal["asc", "desc"] = "asc"
        self.search = SearchDebounce(debounce_seconds, clock)

        self.edits = EditController()
        self.save_error: Optional[ClassifiedError] = None
        self.last_deleted: Optional[DeletedRow] = None

        self.scroll_top = 0.0
        self.viewport_height = 0.0
        self.window = VirtualWindow()

        self._request_seq = 0
        self._seq_lock = threading.Lock()

    # ── Request currency ──────────────────────────────────────────────────────

    def _next_token(self) -> int:
        with self._seq_lock:
            self._request_seq += 1
            return self._request_seq

    def is_current(self, token: int) -> bool:
        return token == self._request_seq

    def _require_table(self) -> str:
        if not self.table_name:
            raise NoTableSelectedError("No table selected.")
        return self.table_name

    def _row(self, row_index: int) -> dict[str, Any]:
        if not 0 <= row_index < len(self.rows):
            raise IndexError(f"Row index {row_index} out of range")
        return self.rows[row_index]

    def filters(self) -> dict[str, Any]:
        if is_valid_uuid(self.owner_id):
            return {self.owner_column: self.owner_id}
        return {}

    # ── Loading ───────────────────────────────────────────────────────────────

    def open_table(self, table: str, reset_paging: bool = True) -> None:
        token = self._next_token()
        self.table_name = table
        if reset_paging:
            self.page = 1
            self.sort_column = None
            self.sort_direction = "asc"
        self.rows = []
        self.rows_error = None
        self.total_count = None
        self.columns = []
        self.foreign_keys = []
        self.quality_issues = []
        self.save_error = None
        self._recompute_window()

        columns = self.cache.get(table)
        if not self.is_current(token):
            logger.debug("Dropping stale metadata for %s", table)
            return
        self.columns = columns
        self.foreign_keys = extract_foreign_keys(columns)
        self.quality_issues = compute_data_quality_issues(columns)
        self._fetch_rows(token)

    def reload(self) -> None:
        self._require_table()
        self._fetch_rows(self._next_token())

    def search_spec(self) -> Optional[SearchSpec]:
        text = self.search.current()
        if not text:
            return None
        string_cols = [c.name for c in self.columns if c.type is ColumnType.STRING][: self.search_max_columns]
        if not string_cols:
            return None
        return SearchSpec(pattern=text.replace("%", ""), columns=string_cols)

    def _fetch_rows(self, token: int) -> None:
        table = self._require_table()
        range_start = (self.page - 1) * self.page_size
        range_end = range_start + self.page_size - 1
        sort = SortSpec(column=self.sort_column, ascending=self.sort_direction == "asc") if self.sort_column else None
        try:
            page = self.store.select_page(
                table,
                filters=self.filters(),
                sort=sort,
                search=self.search_spec(),
                range_start=range_start,
                range_end=range_end,
            )
        except RowStoreError as e:
            if self.is_current(token):
                logger.warning("Fetching rows of %s failed: %s", table, e)
                self.rows_error = e.message
            return
        if not self.is_current(token):
            logger.debug("Dropping stale page of %s", table)
            return
        self.rows = page.rows
        self.total_count = page.total_count
        self.rows_error = None
        self._recompute_window()

    # ── Paging / sorting / search ─────────────────────────────────────────────

    @property
    def total_pages(self) -> int:
        if not self.total_count:
            return 1
        return max(1, -(-self.total_count // self.page_size))

    @property
    def can_prev(self) -> bool:
        return self.page > 1

    @property
    def can_next(self) -> bool:
        return self.page < self.total_pages

    def query(
        self,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        sort_column: Optional[str] = None,
        sort_direction: Optional[Literal["asc", "desc"]] = None,
        search: Optional[str] = None,
    ) -> None:
        """Apply grid parameters and reload. Changing page size or search returns to page 1."""
        self._require_table()
        if page is not None:
            self.page = page
        if page_size is not None and page_size != self.page_size:
            self.page_size = page_size
            self.page = 1
        if sort_column is not None:
            self.sort_column = sort_column or None
        if sort_direction is not None:
            self.sort_direction = sort_direction
        if search is not None and search != self.search.current():
            self.search.set(search)
            self.search.flush()
            self.page = 1
        self.reload()

    def toggle_sort(self, column: str) -> None:
        if self.sort_column == column:
            self.sort_direction = "desc" if self.sort_direction == "asc" else "asc"
        else:
            self.sort_column = column
            self.sort_direction = "asc"
        self.reload()

    def type_search(self, text: str) -> None:
        """Record keystrokes; the grid reloads from `poll_search` once typing pauses."""
        self.search.set(text)

    def poll_search(self) -> bool:
        before = self.search.value
        if self.search.current() != before:
            self.page = 1
            self.reload()
            return True
        return False

    # ── Virtualization ────────────────────────────────────────────────────────

    def _recompute_window(self) -> None:
        self.window = compute_virtual_window(
            len(self.rows), self.row_height, self.scroll_top, self.viewport_height, self.overscan
        )

    def scroll(self, scroll_top: float, viewport_height: Optional[float] = None) -> VirtualWindow:
        self.scroll_top = scroll_top
        if viewport_height is not None:
            self.viewport_height = viewport_height
        self._recompute_window()
        return self.window

    def visible_rows(self) -> list[dict[str, Any]]:
        return visible_slice(self.rows, self.window)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def commit_edit(self, row_index: int, column: str, value: Any) -> Optional[ClassifiedError]:
        """
        Optimistically write one cell. The new value is visible before the
        store confirms it; on failure the previous value is restored and the
        classified error is returned (and kept in `save_error`).
        """
        table = self._require_table()
        row = self._row(row_index)
        row_id = require_row_id(row)
        self.save_error = None

        self.rows = self.edits.begin(self.rows, row_index, column, value)
        try:
            self.store.update(table, row_id, {column: value})
        except Exception as e:
            # The pending slot must be released whatever the store raised
            self.rows = self.edits.rollback(self.rows)
            self.save_error = classify_error(e)
            if isinstance(e, RowStoreError):
                logger.info("Edit of %s.%s rolled back: %s", table, column, e)
            else:
                logger.exception("Edit of %s.%s rolled back after unexpected error", table, column)
            return self.save_error
        self.edits.settle()
        return None

    def create_template(self) -> dict[str, Any]:
        return {c.name: "" for c in self.columns if c.name not in CREATE_EXCLUDED_COLUMNS}

    def create_row(self, values: dict[str, Any]) -> Optional[ClassifiedError]:
        table = self._require_table()
        payload = dict(values)
        if is_valid_uuid(self.owner_id):
            payload[self.owner_column] = self.owner_id
        try:
            self.store.insert(table, payload)
        except RowStoreError as e:
            return classify_error(e)
        self.page = 1
        self.reload()
        return None

    def delete_row(self, row_index: int) -> Optional[ClassifiedError]:
        """Delete after the store confirms; the row is kept for a single undo."""
        table = self._require_table()
        row = self._row(row_index)
        row_id = require_row_id(row)
        try:
            self.store.delete(table, row_id)
        except RowStoreError as e:
            self.save_error = classify_error(e)
            return self.save_error
        self.last_deleted = DeletedRow(table_name=table, row=row)
        self.rows = [r for i, r in enumerate(self.rows) if i != row_index]
        if self.total_count is not None:
            self.total_count = max(0, self.total_count - 1)
        self._recompute_window()
        return None

    def undo_delete(self) -> Optional[ClassifiedError]:
        """Re-insert the last deleted row. This is a plain insert, not a restore."""
        deleted = self.last_deleted
        if deleted is None:
            return None
        try:
            self.store.insert(deleted.table_name, deleted.row)
        except RowStoreError as e:
            classified = classify_error(e)
            self.save_error = classified.model_copy(update={"message": f"Undo failed: {classified.message}"})
            return self.save_error
        self.last_deleted = None
        if self.table_name == deleted.table_name:
            self.reload()
        return None

    # ── Detail / navigation ───────────────────────────────────────────────────

    def row_detail(self, row_index: int) -> RowDetail:
        row = self._row(row_index)
        return RowDetail(
            row_index=row_index,
            row=row,
            rendered=json.dumps(row, indent=2, default=str),
            references=[
                {"column": fk.column, "ref": fk.ref, "value": row.get(fk.column)}
                for fk in self.foreign_keys
            ],
        )

    def follow_reference(self, column: str) -> str:
        for fk in self.foreign_keys:
            if fk.column == column:
                self.open_table(fk.ref)
                return fk.ref
        raise KeyError(f"Column '{column}' carries no foreign key hint.")

    def state(self) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            table_name=self.table_name,
            columns=self.columns,
            foreign_keys=self.foreign_keys,
            quality_issues=self.quality_issues,
            page=self.page,
            page_size=self.page_size,
            total_count=self.total_count,
            total_pages=self.total_pages,
            can_prev=self.can_prev,
            can_next=self.can_next,
            sort_column=self.sort_column,
            sort_direction=self.sort_direction,
            search=self.search.current(),
            rows_error=self.rows_error,
            save_error=self.save_error,
            window=self.window,
            visible_rows=self.visible_rows(),
            can_undo_delete=self.last_deleted is not None,
        )
