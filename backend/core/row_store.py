"""
Row store — the remote table interface the browser talks to, and its
SQLAlchemy implementation over reflected tables (SQLite and PostgreSQL).
Every failure surfaces as RowStoreError carrying a SQLSTATE-style code.
"""
import json
import logging
from typing import Any, Optional, Protocol

from sqlalchemy import JSON, MetaData, Table, create_engine, event, func, inspect, or_, select, text
from sqlalchemy.exc import DBAPIError, NoSuchTableError, OperationalError, SQLAlchemyError, StatementError

from core.exceptions import RowStoreError
from models.rows import RowPage, SearchSpec, SortSpec

logger = logging.getLogger(__name__)

# SQLite extended error names → PostgreSQL SQLSTATE codes
_SQLITE_CODE_MAP = {
    "SQLITE_CONSTRAINT_UNIQUE": "23505",
    "SQLITE_CONSTRAINT_PRIMARYKEY": "23505",
    "SQLITE_CONSTRAINT_FOREIGNKEY": "23503",
    "SQLITE_CONSTRAINT_NOTNULL": "23502",
    "SQLITE_CONSTRAINT_CHECK": "23514",
    "SQLITE_READONLY": "42501",
    "SQLITE_AUTH": "42501",
    "SQLITE_MISMATCH": "22P02",
}

# Fallback when the driver reports only the primary result code
_SQLITE_MESSAGE_MAP = (
    ("UNIQUE constraint failed", "23505"),
    ("FOREIGN KEY constraint failed", "23503"),
    ("NOT NULL constraint failed", "23502"),
    ("CHECK constraint failed", "23514"),
)


class RowStore(Protocol):
    def list_tables(self) -> list[str]: ...

    def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int: ...

    def select_page(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        search: Optional[SearchSpec] = None,
        range_start: int = 0,
        range_end: int = 24,
    ) -> RowPage: ...

    def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]: ...

    def update(self, table: str, row_id: Any, patch: dict[str, Any]) -> None: ...

    def insert(self, table: str, row: dict[str, Any]) -> None: ...

    def delete(self, table: str, row_id: Any) -> None: ...

    def ping(self) -> None: ...


def _error_from_dbapi(e: DBAPIError) -> RowStoreError:
    orig = e.orig
    message = str(orig) if orig is not None else str(e)
    code = getattr(orig, "pgcode", None) or _SQLITE_CODE_MAP.get(getattr(orig, "sqlite_errorname", ""))
    if code is None:
        code = next((c for prefix, c in _SQLITE_MESSAGE_MAP if message.startswith(prefix)), None)
    return RowStoreError(message, code=code, retryable=isinstance(e, OperationalError) and code is None)


def _error_from_sqlalchemy(e: SQLAlchemyError) -> RowStoreError:
    if isinstance(e, DBAPIError):
        return _error_from_dbapi(e)
    if isinstance(e, StatementError):
        # Raised before the driver saw the statement: a value the column type could not bind
        return RowStoreError(str(e.orig or e), code="22P02")
    return RowStoreError(str(e))


def _enable_sqlite_foreign_keys(dbapi_conn, _record) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


class SqlAlchemyRowStore:
    """RowStore over a SQLAlchemy engine; tables are reflected lazily and memoized."""

    def __init__(self, url: str, engine=None):
        self.url = url
        self.engine = engine or create_engine(url, pool_pre_ping=True)
        self._tables: dict[str, Table] = {}
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

    def close(self) -> None:
        self.engine.dispose()

    # ── Reflection ────────────────────────────────────────────────────────────

    def _table(self, name: str) -> Table:
        if name not in self._tables:
            try:
                self._tables[name] = Table(name, MetaData(), autoload_with=self.engine)
            except NoSuchTableError as e:
                raise RowStoreError(f'relation "{name}" does not exist', code="42P01") from e
            except DBAPIError as e:
                raise _error_from_dbapi(e) from e
        return self._tables[name]

    def forget(self, name: str) -> None:
        """Drop the memoized reflection, e.g. after an out-of-band migration."""
        self._tables.pop(name, None)

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise RowStoreError(f'column "{name}" of relation "{table.name}" does not exist', code="42703")
        return table.c[name]

    def _where(self, table: Table, filters: Optional[dict[str, Any]]) -> list:
        clauses = []
        for key, value in (filters or {}).items():
            if key not in table.c:
                logger.debug("Ignoring filter %s: not a column of %s", key, table.name)
                continue
            clauses.append(table.c[key] == value)
        return clauses

    def _encode(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        encoded = {}
        for key, value in row.items():
            col = self._column(table, key)
            if isinstance(value, (dict, list)) and not isinstance(col.type, JSON):
                try:
                    value = json.dumps(value)
                except (TypeError, ValueError) as e:
                    raise RowStoreError(f"invalid input for column \"{key}\": {e}", code="22P02") from e
            encoded[key] = value
        return encoded

    # ── Reads ─────────────────────────────────────────────────────────────────

    def list_tables(self) -> list[str]:
        try:
            return sorted(inspect(self.engine).get_table_names())
        except SQLAlchemyError as e:
            raise _error_from_sqlalchemy(e) from e

    def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int:
        t = self._table(table)
        stmt = select(func.count()).select_from(t).where(*self._where(t, filters))
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar() or 0)
        except SQLAlchemyError as e:
            raise _error_from_sqlalchemy(e) from e

    def select_page(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        search: Optional[SearchSpec] = None,
        range_start: int = 0,
        range_end: int = 24,
    ) -> RowPage:
        t = self._table(table)
        clauses = self._where(t, filters)
        if search and search.pattern and search.columns:
            pattern = search.pattern.replace("%", "")
            clauses.append(or_(*[self._column(t, c).ilike(f"%{pattern}%") for c in search.columns]))

        stmt = select(t).where(*clauses)
        if sort:
            col = self._column(t, sort.column)
            stmt = stmt.order_by(col.asc() if sort.ascending else col.desc())
        limit = max(0, range_end - range_start + 1)
        stmt = stmt.offset(range_start).limit(limit)
        count_stmt = select(func.count()).select_from(t).where(*clauses)

        try:
            with self.engine.connect() as conn:
                rows = [dict(r._mapping) for r in conn.execute(stmt)]
                total = int(conn.execute(count_stmt).scalar() or 0)
        except SQLAlchemyError as e:
            raise _error_from_sqlalchemy(e) from e
        return RowPage(rows=rows, total_count=total)

    def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        t = self._table(table)
        try:
            with self.engine.connect() as conn:
                return [dict(r._mapping) for r in conn.execute(select(t).limit(limit))]
        except SQLAlchemyError as e:
            raise _error_from_sqlalchemy(e) from e

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise RowStoreError(f"Could not connect to database: {e}", retryable=True) from e

    # ── Writes ────────────────────────────────────────────────────────────────

    def _write(self, stmt, action: str) -> None:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as e:
            raise _error_from_sqlalchemy(e) from e
        logger.debug("%s affected %s row(s)", action, result.rowcount)

    def update(self, table: str, row_id: Any, patch: dict[str, Any]) -> None:
        t = self._table(table)
        id_col = self._column(t, "id")
        self._write(t.update().where(id_col == row_id).values(self._encode(t, patch)), "update")

    def insert(self, table: str, row: dict[str, Any]) -> None:
        t = self._table(table)
        values = self._encode(t, row)
        self._write(t.insert().values(values) if values else t.insert(), "insert")

    def delete(self, table: str, row_id: Any) -> None:
        t = self._table(table)
        id_col = self._column(t, "id")
        self._write(t.delete().where(id_col == row_id), "delete")
