"""
Type classifier — infers column shapes from a sample of rows.

Every sampled value is first tagged with a ValueKind; the column type is the
first category that *all* sampled non-null values agree on, falling through
to `string`. Foreign keys are guessed from `<base>_id` column names only.
"""
import json
import logging
import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from models.column import ColumnMeta, ColumnType, ForeignKeyHint

logger = logging.getLogger(__name__)

TYPE_SAMPLE_CAP = 10

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}T?")
_UUID_RE = re.compile(r"^[0-9a-fA-F-]{36}$")
_FK_RE = re.compile(r"^[a-z0-9_]+_id$")
_FK_EXCLUDED = {"user_id"}


class ValueKind(str, Enum):
    NULL = "null"
    NUMBER = "number"
    BOOL = "bool"
    TEXT = "text"
    JSON = "json"
    ARRAY = "array"
    TEMPORAL = "temporal"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    # bool is an int subclass; it must be tested first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float, Decimal)):
        return ValueKind.NUMBER
    if isinstance(value, (str, uuid.UUID)):
        return ValueKind.TEXT
    if isinstance(value, Mapping):
        return ValueKind.JSON
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, (datetime, date, time)):
        return ValueKind.TEMPORAL
    return ValueKind.OTHER


def _looks_like_date(text: str) -> bool:
    if not _DATE_RE.search(text):
        return False
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


def detect_type(values: Iterable[Any]) -> ColumnType:
    """Classify a list of sampled values into a single ColumnType."""
    tagged = [(v, kind_of(v)) for v in values]
    tagged = [(v, k) for v, k in tagged if k is not ValueKind.NULL]
    if not tagged:
        return ColumnType.UNKNOWN
    kinds = {k for _, k in tagged}

    if kinds == {ValueKind.NUMBER}:
        return ColumnType.NUMBER
    if kinds == {ValueKind.BOOL}:
        return ColumnType.BOOLEAN
    if kinds == {ValueKind.JSON}:
        return ColumnType.JSON
    if kinds == {ValueKind.ARRAY}:
        return ColumnType.ARRAY
    if kinds <= {ValueKind.TEXT, ValueKind.TEMPORAL}:
        if all(k is ValueKind.TEMPORAL or _looks_like_date(str(v)) for v, k in tagged):
            return ColumnType.DATE
    if kinds == {ValueKind.TEXT}:
        if all(isinstance(v, uuid.UUID) or _UUID_RE.match(v) for v, _ in tagged):
            return ColumnType.UUID
    return ColumnType.STRING


def foreign_key_hint(column_name: str) -> Optional[str]:
    """Guess the referenced table for a `<base>_id` column.

    customer_id → "customers", policy_id → "policys". Only the `base + "s"`
    candidate is produced; the guess is never validated.
    """
    if column_name in _FK_EXCLUDED or not _FK_RE.match(column_name):
        return None
    return column_name[:-3] + "s"


def infer_columns(rows: list[Mapping[str, Any]], type_sample_cap: int = TYPE_SAMPLE_CAP) -> list[ColumnMeta]:
    """
    Infer column metadata from sampled rows.
    Columns are the union of keys across all rows; a key absent from a row
    counts as missing for that row.
    """
    if not rows:
        return []

    names: dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            names.setdefault(key, None)

    sample_count = len(rows)
    columns: list[ColumnMeta] = []
    for name in names:
        non_null = [row[name] for row in rows if row.get(name) is not None]
        columns.append(ColumnMeta(
            name=name,
            type=detect_type(non_null[:type_sample_cap]),
            nullable=len(non_null) != sample_count,
            sample_value=non_null[0] if non_null else None,
            foreign_key_ref=foreign_key_hint(name),
            missing_fraction=(sample_count - len(non_null)) / sample_count,
        ))

    columns.sort(key=lambda c: c.name)
    logger.debug("Inferred %d columns from %d sampled rows", len(columns), sample_count)
    return columns


def extract_foreign_keys(columns: Iterable[ColumnMeta]) -> list[ForeignKeyHint]:
    return [ForeignKeyHint(column=c.name, ref=c.foreign_key_ref) for c in columns if c.foreign_key_ref]


# ── Signature ────────────────────────────────────────────────────────────────

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    n = abs(n)
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def string_hash(text: str) -> str:
    """Non-cryptographic 32-bit string hash rendered in base 36."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return _to_base36(h)


def compute_signature(columns: Iterable[ColumnMeta]) -> str:
    parts = [f"{c.name}:{c.type.value}{'?' if c.nullable else ''}" for c in columns]
    return string_hash("|".join(parts))


# ── Presentation helpers ─────────────────────────────────────────────────────

def _preview(value: Any, limit: int = 120) -> str:
    if isinstance(value, (Mapping, list, tuple)):
        text = json.dumps(value, default=str)
    else:
        text = str(value)
    return text[:limit]


def describe_column(column: ColumnMeta) -> str:
    """Tooltip text for a grid header."""
    lines = [f"Type: {column.type.value}{' (nullable)' if column.nullable else ''}"]
    if column.sample_value is not None:
        lines.append(f"Sample: {_preview(column.sample_value)}")
    if column.foreign_key_ref:
        lines.append(f"FK -> {column.foreign_key_ref} (unverified)")
    if column.missing_fraction is not None:
        lines.append(f"Missing ratio: {column.missing_fraction * 100:.1f}%")
    return "\n".join(lines)
