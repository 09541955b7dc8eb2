"""
Metadata cache — two-tier memo of inferred column metadata per table.

Tier 1 is an in-process dict, tier 2 a durable JSON blob store keyed
`table_meta_<table>`. Durable blobs carry a format version and a schema
signature; a version mismatch or an unreadable blob is a plain cache miss.
"""
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from core.blob_store import BlobStore
from core.exceptions import RowStoreError
from core.row_store import RowStore
from core.type_classifier import TYPE_SAMPLE_CAP, compute_signature, infer_columns
from models.column import CacheEntry, ColumnMeta, DurableCacheEntry

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5 * 60
CACHE_VERSION = 1
SAMPLE_ROW_LIMIT = 50


def durable_key(table: str) -> str:
    return f"table_meta_{table}"


class MetadataCache:
    """Explicit cache object; construct once per process and pass it to callers."""

    def __init__(
        self,
        store: RowStore,
        durable: Optional[BlobStore] = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        version: int = CACHE_VERSION,
        sample_limit: int = SAMPLE_ROW_LIMIT,
        type_sample_cap: int = TYPE_SAMPLE_CAP,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.durable = durable
        self.ttl_seconds = ttl_seconds
        self.version = version
        self.sample_limit = sample_limit
        self.type_sample_cap = type_sample_cap
        self.clock = clock
        self._memory: dict[str, CacheEntry] = {}

    def _fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self.ttl_seconds

    def peek(self, table: str) -> Optional[CacheEntry]:
        return self._memory.get(table)

    def get(self, table: str) -> list[ColumnMeta]:
        now = self.clock()

        entry = self._memory.get(table)
        if entry is not None and self._fresh(entry, now):
            logger.debug("Metadata cache hit (memory) for %s", table)
            return list(entry.columns)

        durable_entry = self._read_durable(table)
        if durable_entry is not None and durable_entry.version == self.version and self._fresh(durable_entry, now):
            logger.debug("Metadata cache hit (durable) for %s", table)
            promoted = CacheEntry(
                columns=durable_entry.columns,
                fetched_at=durable_entry.fetched_at,
                signature=durable_entry.signature,
            )
            self._memory[table] = promoted
            return list(promoted.columns)

        logger.debug("Metadata cache miss for %s", table)
        return self._refresh(table, now)

    def invalidate(self, table: str) -> None:
        self._memory.pop(table, None)
        if self.durable is not None:
            try:
                self.durable.remove(durable_key(table))
            except OSError as e:
                logger.warning("Could not remove durable metadata for %s: %s", table, e)
        forget = getattr(self.store, "forget", None)
        if forget is not None:
            forget(table)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _refresh(self, table: str, now: float) -> list[ColumnMeta]:
        try:
            rows = self.store.sample_rows(table, self.sample_limit)
        except RowStoreError as e:
            logger.warning("Column inference for %s failed, showing no columns: %s", table, e)
            return []

        if not rows:
            self._memory[table] = CacheEntry(columns=(), fetched_at=now)
            return []

        columns = infer_columns(rows, type_sample_cap=self.type_sample_cap)
        signature = compute_signature(columns)
        entry = CacheEntry(columns=tuple(columns), fetched_at=now, signature=signature)
        self._memory[table] = entry
        self._write_durable(table, entry)
        logger.info("Inferred %d columns for %s (signature %s)", len(columns), table, signature)
        return list(entry.columns)

    def _read_durable(self, table: str) -> Optional[DurableCacheEntry]:
        if self.durable is None:
            return None
        raw = self.durable.get(durable_key(table))
        if raw is None:
            return None
        try:
            return DurableCacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.debug("Discarding malformed durable metadata for %s: %s", table, e)
            return None

    def _write_durable(self, table: str, entry: CacheEntry) -> None:
        if self.durable is None:
            return
        blob = DurableCacheEntry(
            columns=entry.columns,
            fetched_at=entry.fetched_at,
            signature=entry.signature,
            version=self.version,
        )
        try:
            self.durable.put(durable_key(table), blob.model_dump(mode="json"))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not persist metadata for %s: %s", table, e)
