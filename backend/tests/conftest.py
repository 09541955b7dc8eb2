import os
import sys

# Add the parent directory (backend) to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
import sqlite3
import tempfile
from fastapi.testclient import TestClient

from api import deps
from core.blob_store import MemoryBlobStore
from core.exceptions import RowStoreError
from core.metadata_cache import MetadataCache
from core.row_store import SqlAlchemyRowStore
from models.rows import RowPage

OWNER = "0b6f3a52-6a4e-4c1e-9d7b-2f6b5a1c9e01"


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRowStore:
    """In-memory RowStore that records calls and can be told to fail."""

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls: list[tuple] = []
        self.fail: dict[str, Exception] = {}
        self.on_select = None

    def _maybe_fail(self, op: str):
        if op in self.fail:
            raise self.fail[op]

    def list_tables(self):
        return sorted(self.tables)

    def count(self, table, filters=None):
        self.calls.append(("count", table))
        self._maybe_fail("count")
        return len(self.tables[table])

    def select_page(self, table, filters=None, sort=None, search=None, range_start=0, range_end=24):
        self.calls.append(("select_page", table, filters, sort, search, range_start, range_end))
        self._maybe_fail("select_page")
        if self.on_select is not None:
            hook, self.on_select = self.on_select, None
            hook(table)
        rows = list(self.tables.get(table, []))
        if search is not None:
            needle = search.pattern.lower()
            rows = [r for r in rows if any(needle in str(r.get(c) or "").lower() for c in search.columns)]
        if sort is not None:
            rows.sort(key=lambda r: r.get(sort.column), reverse=not sort.ascending)
        return RowPage(rows=[dict(r) for r in rows[range_start:range_end + 1]], total_count=len(rows))

    def sample_rows(self, table, limit):
        self.calls.append(("sample_rows", table, limit))
        self._maybe_fail("sample_rows")
        return [dict(r) for r in self.tables.get(table, [])[:limit]]

    def update(self, table, row_id, patch):
        self.calls.append(("update", table, row_id, patch))
        self._maybe_fail("update")
        for r in self.tables[table]:
            if r.get("id") == row_id:
                r.update(patch)

    def insert(self, table, row):
        self.calls.append(("insert", table, row))
        self._maybe_fail("insert")
        self.tables.setdefault(table, []).append(dict(row))

    def delete(self, table, row_id):
        self.calls.append(("delete", table, row_id))
        self._maybe_fail("delete")
        self.tables[table] = [r for r in self.tables[table] if r.get("id") != row_id]

    def ping(self):
        self._maybe_fail("ping")

    def calls_to(self, op: str) -> int:
        return sum(1 for c in self.calls if c[0] == op)


CONTACTS = [
    {"id": 1, "name": "Ada", "email": "ada@example.com", "city": "London", "policy_id": 7, "user_id": OWNER},
    {"id": 2, "name": "Grace", "email": "grace@example.com", "city": None, "policy_id": None, "user_id": OWNER},
    {"id": 3, "name": "Linus", "email": "linus@example.com", "city": "Helsinki", "policy_id": 7, "user_id": OWNER},
    {"id": 4, "name": "Barbara", "email": None, "city": None, "policy_id": 9, "user_id": OWNER},
]
POLICYS = [
    {"id": 7, "title": "Home", "premium": 120.5},
    {"id": 9, "title": "Car", "premium": 310.0},
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_store():
    return FakeRowStore({"contacts": CONTACTS, "policys": POLICYS})


@pytest.fixture
def fake_cache(fake_store, clock):
    return MetadataCache(fake_store, durable=MemoryBlobStore(), clock=clock)


@pytest.fixture
def temp_sqlite_db():
    fd, path = tempfile.mkstemp(suffix=".db")
    try:
        conn = sqlite3.connect(path)
        cur = conn.cursor()
        cur.execute("CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT UNIQUE, "
                    "country TEXT, created_at TEXT);")
        cur.execute("CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER REFERENCES customers(id), "
                    "status TEXT, total_amount REAL, user_id TEXT);")
        cur.executemany(
            "INSERT INTO customers (name, email, country, created_at) VALUES (?, ?, ?, ?);",
            [
                ("Ada Lovelace", "ada@example.com", "UK", "2024-01-05T10:00:00"),
                ("Grace Hopper", "grace@example.com", None, "2024-02-11T08:30:00"),
                ("Linus Torvalds", "linus@example.com", "FI", "2024-03-20T17:45:00"),
                ("Barbara Liskov", "barbara@example.com", None, "2024-04-02T12:00:00"),
            ],
        )
        cur.executemany(
            "INSERT INTO orders (customer_id, status, total_amount, user_id) VALUES (?, ?, ?, ?);",
            [
                (1, "SHIPPED", 19.99, OWNER),
                (2, "PENDING", 5.0, OWNER),
                (1, "DELIVERED", 42.5, "someone-else"),
            ],
        )
        conn.commit()
        conn.close()
        yield path
    finally:
        os.close(fd)
        os.remove(path)


@pytest.fixture
def sql_store(temp_sqlite_db):
    store = SqlAlchemyRowStore(f"sqlite:///{temp_sqlite_db}")
    yield store
    store.close()


@pytest.fixture
def events_store(temp_sqlite_db):
    """A store whose `events` table has a typed DATETIME column."""
    conn = sqlite3.connect(temp_sqlite_db)
    conn.execute("CREATE TABLE events (id INTEGER PRIMARY KEY, title TEXT, happened_at DATETIME);")
    conn.execute("INSERT INTO events VALUES (1, 'kickoff', '2024-01-01 10:00:00');")
    conn.commit()
    conn.close()
    store = SqlAlchemyRowStore(f"sqlite:///{temp_sqlite_db}")
    yield store
    store.close()


@pytest.fixture
def client(sql_store):
    from main import app
    cache = MetadataCache(sql_store, durable=MemoryBlobStore())
    deps.configure(store=sql_store, cache=cache)
    with TestClient(app) as test_client:
        yield test_client
    deps.configure()


@pytest.fixture
def unavailable_error():
    return RowStoreError("could not connect to server: network is unreachable", retryable=True)
