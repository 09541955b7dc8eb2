import pytest
from conftest import OWNER
from core.error_classifier import classify_error
from core.exceptions import RowStoreError
from models.errors import ErrorCategory
from models.rows import SearchSpec, SortSpec


def test_list_tables(sql_store):
    assert sql_store.list_tables() == ["customers", "orders"]


def test_count_with_owner_filter(sql_store):
    assert sql_store.count("orders") == 3
    assert sql_store.count("orders", {"user_id": OWNER}) == 2


def test_filter_on_missing_column_is_ignored(sql_store):
    assert sql_store.count("customers", {"user_id": OWNER}) == 4


def test_select_page_sorted_and_ranged(sql_store):
    page = sql_store.select_page("customers", sort=SortSpec(column="name"), range_start=0, range_end=1)
    assert page.total_count == 4
    assert [r["name"] for r in page.rows] == ["Ada Lovelace", "Barbara Liskov"]

    page = sql_store.select_page("customers", sort=SortSpec(column="name", ascending=False), range_start=2, range_end=10)
    assert [r["name"] for r in page.rows] == ["Barbara Liskov", "Ada Lovelace"]


def test_select_page_search_is_case_insensitive(sql_store):
    page = sql_store.select_page("customers", search=SearchSpec(pattern="GRACE", columns=["name", "email"]))
    assert page.total_count == 1
    assert page.rows[0]["email"] == "grace@example.com"


def test_search_strips_wildcards(sql_store):
    page = sql_store.select_page("customers", search=SearchSpec(pattern="gr%ace", columns=["name"]))
    assert page.total_count == 1


def test_sample_rows(sql_store):
    rows = sql_store.sample_rows("customers", 2)
    assert len(rows) == 2
    assert set(rows[0]) == {"id", "name", "email", "country", "created_at"}


def test_update_insert_delete(sql_store):
    sql_store.update("customers", 2, {"country": "US"})
    page = sql_store.select_page("customers", search=SearchSpec(pattern="grace", columns=["name"]))
    assert page.rows[0]["country"] == "US"

    sql_store.insert("customers", {"name": "Edsger Dijkstra", "email": "ewd@example.com"})
    assert sql_store.count("customers") == 5

    sql_store.delete("customers", 5)
    assert sql_store.count("customers") == 4


def test_json_values_are_serialized_for_text_columns(sql_store):
    sql_store.update("orders", 1, {"status": {"state": "held"}})
    row = sql_store.select_page("orders", sort=SortSpec(column="id"), range_end=0).rows[0]
    assert row["status"] == '{"state": "held"}'


def test_duplicate_key_maps_to_sqlstate(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.insert("customers", {"name": "Copy", "email": "ada@example.com"})
    assert exc.value.code == "23505"
    assert exc.value.retryable is False
    assert classify_error(exc.value).category is ErrorCategory.DUPLICATE_KEY


def test_foreign_key_violation(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.insert("orders", {"customer_id": 999, "status": "PENDING", "user_id": OWNER})
    assert exc.value.code == "23503"
    assert classify_error(exc.value).category is ErrorCategory.FOREIGN_KEY_VIOLATION


def test_not_null_violation(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.insert("customers", {"email": "nobody@example.com"})
    assert exc.value.code == "23502"


def test_unknown_table(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.count("nope")
    assert exc.value.code == "42P01"


def test_unknown_sort_column(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.select_page("customers", sort=SortSpec(column="nope"))
    assert exc.value.code == "42703"


def test_forget_drops_reflection(sql_store):
    sql_store.count("customers")
    assert "customers" in sql_store._tables
    sql_store.forget("customers")
    assert "customers" not in sql_store._tables


def test_ping(sql_store):
    sql_store.ping()


def test_unbindable_value_maps_to_invalid_input(events_store):
    # SQLite's DATETIME type only binds datetime objects
    with pytest.raises(RowStoreError) as exc:
        events_store.update("events", 1, {"happened_at": "2024-02-02 11:00:00"})
    assert exc.value.code == "22P02"
    assert classify_error(exc.value).category is ErrorCategory.INVALID_INPUT_SYNTAX


def test_unserializable_json_value_maps_to_invalid_input(sql_store):
    with pytest.raises(RowStoreError) as exc:
        sql_store.update("orders", 1, {"status": {"at": object()}})
    assert exc.value.code == "22P02"
