import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from core.type_classifier import (
    ValueKind,
    compute_signature,
    describe_column,
    detect_type,
    extract_foreign_keys,
    foreign_key_hint,
    infer_columns,
    kind_of,
    string_hash,
)
from models.column import ColumnMeta, ColumnType


def test_kind_of_tags_bool_before_number():
    assert kind_of(True) is ValueKind.BOOL
    assert kind_of(3) is ValueKind.NUMBER
    assert kind_of(Decimal("1.5")) is ValueKind.NUMBER
    assert kind_of(None) is ValueKind.NULL
    assert kind_of({"a": 1}) is ValueKind.JSON
    assert kind_of([1]) is ValueKind.ARRAY
    assert kind_of(datetime(2024, 1, 1)) is ValueKind.TEMPORAL


@pytest.mark.parametrize("values,expected", [
    ([1, 2.5, 3], ColumnType.NUMBER),
    ([True, False], ColumnType.BOOLEAN),
    ([{"a": 1}, {}], ColumnType.JSON),
    ([[1], []], ColumnType.ARRAY),
    (["2024-01-05", "2024-02-01T10:00:00Z"], ColumnType.DATE),
    ([datetime(2024, 1, 5)], ColumnType.DATE),
    (["123e4567-e89b-12d3-a456-426614174000"], ColumnType.UUID),
    ([uuid.uuid4()], ColumnType.UUID),
    (["hello", "world"], ColumnType.STRING),
    ([], ColumnType.UNKNOWN),
    ([None, None], ColumnType.UNKNOWN),
])
def test_detect_type(values, expected):
    assert detect_type(values) is expected


def test_single_disagreeing_value_falls_through_to_string():
    assert detect_type([1, 2, "three"]) is ColumnType.STRING
    assert detect_type([True, 1]) is ColumnType.STRING
    assert detect_type(["2024-01-05", "not a date"]) is ColumnType.STRING


def test_date_like_but_unparseable_is_not_a_date():
    assert detect_type(["2024-13-45"]) is ColumnType.STRING


def test_infer_columns_unions_keys_and_counts_missing():
    rows = [
        {"id": 1, "name": "A"},
        {"id": 2, "name": None, "extra": True},
        {"id": 3},
        {"id": 4, "name": "D"},
    ]
    cols = {c.name: c for c in infer_columns(rows)}

    assert set(cols) == {"id", "name", "extra"}
    assert cols["id"].type is ColumnType.NUMBER
    assert cols["id"].nullable is False
    assert cols["id"].missing_fraction == 0
    assert cols["name"].type is ColumnType.STRING
    assert cols["name"].nullable is True
    assert cols["name"].missing_fraction == 0.5
    assert cols["name"].sample_value == "A"
    assert cols["extra"].type is ColumnType.BOOLEAN
    assert cols["extra"].missing_fraction == 0.75


def test_missing_fraction_uses_full_sample_not_type_cap():
    rows = [{"v": i} for i in range(30)] + [{"v": None} for _ in range(10)]
    col = infer_columns(rows, type_sample_cap=10)[0]
    assert col.type is ColumnType.NUMBER
    assert col.missing_fraction == 0.25


def test_type_cap_only_inspects_first_values():
    rows = [{"v": i} for i in range(10)] + [{"v": "late string"}]
    assert infer_columns(rows, type_sample_cap=10)[0].type is ColumnType.NUMBER


def test_infer_columns_sorted_by_name():
    rows = [{"zeta": 1, "alpha": 2, "mid": 3}]
    assert [c.name for c in infer_columns(rows)] == ["alpha", "mid", "zeta"]


def test_infer_columns_empty_sample():
    assert infer_columns([]) == []


def test_foreign_key_hint():
    assert foreign_key_hint("customer_id") == "customers"
    assert foreign_key_hint("policy_id") == "policys"
    assert foreign_key_hint("user_id") is None
    assert foreign_key_hint("id") is None
    assert foreign_key_hint("CustomerId") is None


def test_extract_foreign_keys_heuristic():
    rows = [{"id": 1, "policy_id": 3, "user_id": "u", "liability_id": None, "name": "x"}]
    fks = extract_foreign_keys(infer_columns(rows))

    assert {(f.column, f.ref) for f in fks} == {("liability_id", "liabilitys"), ("policy_id", "policys")}
    assert all(f.verified is False for f in fks)


def test_extract_foreign_keys_from_prebuilt_columns():
    cols = [
        ColumnMeta(name="id", type=ColumnType.UUID, nullable=False),
        ColumnMeta(name="policy_id", type=ColumnType.UUID, foreign_key_ref="policys"),
        ColumnMeta(name="user_id", type=ColumnType.UUID, nullable=False),
    ]
    fks = extract_foreign_keys(cols)
    assert [f.column for f in fks] == ["policy_id"]


def test_signature_is_stable_and_sensitive():
    a = infer_columns([{"id": 1, "name": "x"}])
    b = infer_columns([{"id": 2, "name": "y"}])
    c = infer_columns([{"id": 2, "name": None}])
    assert compute_signature(a) == compute_signature(b)
    assert compute_signature(a) != compute_signature(c)


def test_string_hash_matches_32bit_wraparound():
    assert string_hash("") == "0"
    assert string_hash("a") == "2p"          # 97
    assert string_hash("ab") == "2e9"        # 97 * 31 + 98
    assert -(2 ** 31) <= int(string_hash("x" * 40), 36) < 2 ** 31


def test_describe_column():
    col = ColumnMeta(
        name="customer_id", type=ColumnType.NUMBER, nullable=True,
        sample_value=5, foreign_key_ref="customers", missing_fraction=0.25,
    )
    text = describe_column(col)
    assert "Type: number (nullable)" in text
    assert "Sample: 5" in text
    assert "FK -> customers (unverified)" in text
    assert "Missing ratio: 25.0%" in text
