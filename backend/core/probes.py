"""
Concurrent per-table probes (row counts, column metadata).

Each probe runs the blocking row store call in a worker thread under its own
timeout, retries timeouts and retryable store errors with linear back-off,
and reports failure per table instead of failing the batch.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel

from core.error_classifier import describe_error
from core.exceptions import RowStoreError
from core.metadata_cache import MetadataCache
from core.row_store import RowStore
from models.column import ColumnMeta
from models.rows import TableCount

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROBE_TIMEOUT_SECONDS = 6.0
PROBE_ATTEMPTS = 2
PROBE_BACKOFF_SECONDS = 0.3


class ProbeTimeoutError(TimeoutError):
    def __init__(self, operation_name: str, timeout_seconds: float):
        self.operation_name = operation_name
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{operation_name} timed out after {timeout_seconds:g}s.")


class TableMetadataProbe(BaseModel):
    table_name: str
    columns: list[ColumnMeta] = []
    error: Optional[str] = None


async def run_with_timeout(operation: Callable[[], Awaitable[T]], timeout_seconds: Optional[float], operation_name: str) -> T:
    if not timeout_seconds or timeout_seconds <= 0:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise ProbeTimeoutError(operation_name, timeout_seconds) from exc


async def call_with_retry(
    fn: Callable[[], T],
    operation_name: str,
    attempts: int = PROBE_ATTEMPTS,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
    backoff_seconds: float = PROBE_BACKOFF_SECONDS,
) -> T:
    """
    Run blocking `fn` in a thread with a timeout. Timeouts and retryable
    RowStoreErrors are retried up to `attempts` times, sleeping
    `backoff_seconds * attempt` in between; anything else is raised at once.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await run_with_timeout(lambda: asyncio.to_thread(fn), timeout_seconds, operation_name)
        except (ProbeTimeoutError, RowStoreError) as e:
            retryable = isinstance(e, ProbeTimeoutError) or e.retryable
            if not retryable or attempt == attempts:
                raise
            logger.warning("%s attempt %d/%d failed: %s", operation_name, attempt, attempts, e)
            await asyncio.sleep(backoff_seconds * attempt)
    raise RuntimeError(f"{operation_name} exhausted retries")  # pragma: no cover


async def fetch_count_with_retry(
    store: RowStore,
    table: str,
    filters: Optional[dict[str, Any]] = None,
    attempts: int = PROBE_ATTEMPTS,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
    backoff_seconds: float = PROBE_BACKOFF_SECONDS,
) -> TableCount:
    try:
        count = await call_with_retry(
            lambda: store.count(table, filters),
            f"count({table})",
            attempts=attempts,
            timeout_seconds=timeout_seconds,
            backoff_seconds=backoff_seconds,
        )
    except (ProbeTimeoutError, RowStoreError) as e:
        return TableCount(table_name=table, error=describe_error(e))
    return TableCount(table_name=table, row_count=count)


async def probe_row_counts(
    store: RowStore,
    tables: list[str],
    filters: Optional[dict[str, Any]] = None,
    **retry_opts: Any,
) -> list[TableCount]:
    """Count every table concurrently; results keep the order of `tables`."""
    results = await asyncio.gather(
        *(fetch_count_with_retry(store, t, filters, **retry_opts) for t in tables),
        return_exceptions=True,
    )
    counts: list[TableCount] = []
    for table, res in zip(tables, results):
        if isinstance(res, BaseException):
            logger.warning("Row count probe for %s failed: %s", table, res)
            counts.append(TableCount(table_name=table, error=str(res) or type(res).__name__))
        else:
            counts.append(res)
    return counts


async def fetch_metadata_with_retry(
    cache: MetadataCache,
    table: str,
    attempts: int = PROBE_ATTEMPTS,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
    backoff_seconds: float = PROBE_BACKOFF_SECONDS,
) -> TableMetadataProbe:
    try:
        columns = await call_with_retry(
            lambda: cache.get(table),
            f"metadata({table})",
            attempts=attempts,
            timeout_seconds=timeout_seconds,
            backoff_seconds=backoff_seconds,
        )
    except (ProbeTimeoutError, RowStoreError) as e:
        return TableMetadataProbe(table_name=table, error=describe_error(e))
    return TableMetadataProbe(table_name=table, columns=columns)


async def probe_metadata(
    cache: MetadataCache,
    tables: list[str],
    **retry_opts: Any,
) -> list[TableMetadataProbe]:
    """Warm the metadata cache for several tables at once."""
    results = await asyncio.gather(
        *(fetch_metadata_with_retry(cache, t, **retry_opts) for t in tables),
        return_exceptions=True,
    )
    probes: list[TableMetadataProbe] = []
    for table, res in zip(tables, results):
        if isinstance(res, BaseException):
            logger.warning("Metadata probe for %s failed: %s", table, res)
            probes.append(TableMetadataProbe(table_name=table, error=str(res) or type(res).__name__))
        else:
            probes.append(res)
    return probes
