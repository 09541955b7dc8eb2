"""
/api/tables — table list with row counts, inferred columns, quality findings,
foreign key hints and schema summaries.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException

from api.deps import browse_tables, get_cache, get_ollama, get_store
from config import settings
from core.data_quality import compute_data_quality_issues, summarize_issues
from core.exceptions import RowStoreError
from core.metadata_cache import MetadataCache
from core.probes import probe_row_counts
from core.row_store import RowStore
from core.schema_summary import SchemaSummary, summarize_table_schema
from core.type_classifier import describe_column, extract_foreign_keys
from models.column import ForeignKeyHint
from models.quality import QualityReport
from models.rows import TableCount

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/tables", response_model=list[TableCount])
async def list_tables(store: RowStore = Depends(get_store)):
    """Row counts for every browsable table, probed concurrently."""
    try:
        tables = browse_tables(store)
    except RowStoreError as e:
        raise HTTPException(502, detail=f"Could not list tables: {e.message}")
    return await probe_row_counts(
        store,
        tables,
        attempts=settings.PROBE_ATTEMPTS,
        timeout_seconds=settings.PROBE_TIMEOUT_SECONDS,
        backoff_seconds=settings.PROBE_BACKOFF_SECONDS,
    )


@router.get("/tables/{table_name}/columns")
def get_columns(table_name: str, cache: MetadataCache = Depends(get_cache)):
    columns = cache.get(table_name)
    entry = cache.peek(table_name)
    return {
        "table_name": table_name,
        "signature": entry.signature if entry else None,
        "columns": [
            {**c.model_dump(mode="json"), "description": describe_column(c)}
            for c in columns
        ],
    }


@router.delete("/tables/{table_name}/columns")
def invalidate_columns(table_name: str, cache: MetadataCache = Depends(get_cache)):
    cache.invalidate(table_name)
    logger.info("Invalidated column metadata for %s", table_name)
    return {"message": f"Column metadata for '{table_name}' invalidated."}


@router.get("/tables/{table_name}/quality", response_model=QualityReport)
def get_quality(table_name: str, cache: MetadataCache = Depends(get_cache)):
    issues = compute_data_quality_issues(cache.get(table_name))
    return QualityReport(table_name=table_name, issues=issues, summary=summarize_issues(issues))


@router.get("/tables/{table_name}/foreign-keys", response_model=list[ForeignKeyHint])
def get_foreign_keys(table_name: str, cache: MetadataCache = Depends(get_cache)):
    return extract_foreign_keys(cache.get(table_name))


@router.get("/tables/{table_name}/summary", response_model=SchemaSummary)
def get_summary(table_name: str, cache: MetadataCache = Depends(get_cache)):
    ollama = get_ollama()
    try:
        return summarize_table_schema(table_name, cache.get(table_name), ollama)
    finally:
        if ollama is not None:
            ollama.close()
