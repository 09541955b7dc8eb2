import pytest
from core.error_classifier import classify_error, describe_error, safe_stringify
from core.exceptions import RowStoreError
from core.probes import ProbeTimeoutError
from models.errors import ErrorCategory


@pytest.mark.parametrize("err,category", [
    ({"code": "23505", "message": "whatever"}, ErrorCategory.DUPLICATE_KEY),
    ({"message": 'duplicate key value violates unique constraint "users_pkey"'}, ErrorCategory.DUPLICATE_KEY),
    ({"code": "23503"}, ErrorCategory.FOREIGN_KEY_VIOLATION),
    (RowStoreError("insert violates foreign key constraint"), ErrorCategory.FOREIGN_KEY_VIOLATION),
    (RowStoreError("new row violates row-level security", code="42501"), ErrorCategory.PERMISSION_DENIED),
    ({"message": "permission denied for table x"}, ErrorCategory.PERMISSION_DENIED),
    ({"message": "invalid input syntax for type uuid"}, ErrorCategory.INVALID_INPUT_SYNTAX),
    (RowStoreError("canceling statement due to statement timeout"), ErrorCategory.TIMEOUT),
    (RowStoreError("network is unreachable"), ErrorCategory.NETWORK),
])
def test_classify(err, category):
    assert classify_error(err).category is category


def test_code_wins_over_message():
    res = classify_error(RowStoreError("network hiccup while inserting", code="23505"))
    assert res.category is ErrorCategory.DUPLICATE_KEY
    assert res.message == "Data conflict (duplicate key)."
    assert res.raw_message == "network hiccup while inserting"


def test_unknown_code_falls_back_to_message():
    res = classify_error({"code": "XX000", "message": "request timed out"})
    assert res.category is ErrorCategory.TIMEOUT


def test_timeout_exceptions():
    res = classify_error(ProbeTimeoutError("count(orders)", 6))
    assert res.category is ErrorCategory.TIMEOUT
    assert res.message == "The request timed out."
    assert "count(orders)" in res.raw_message


def test_unmatched_keeps_raw_message():
    res = classify_error(ValueError("something odd"))
    assert res.category is ErrorCategory.UNKNOWN
    assert res.message == "something odd"


def test_none():
    assert classify_error(None).message == "Unknown error"
    assert describe_error({"code": "23503"}) == "Foreign key violated (referenced row does not exist)."


def test_safe_stringify():
    assert safe_stringify({"a": 1}) == '{"a": 1}'
    assert safe_stringify("plain") == "plain"
    long = safe_stringify("x" * 600)
    assert len(long) == 501 and long.endswith("…")
