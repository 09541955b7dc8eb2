"""Process-wide collaborators shared by the routers (row store, metadata cache, LLM client)."""
import logging
from typing import Optional

from config import settings
from core.blob_store import BlobStore, JsonFileBlobStore, MemoryBlobStore
from core.metadata_cache import MetadataCache
from core.row_store import RowStore, SqlAlchemyRowStore
from integrations.ollama_client import OllamaClient

logger = logging.getLogger(__name__)

_store: Optional[RowStore] = None
_cache: Optional[MetadataCache] = None


def get_store() -> RowStore:
    global _store
    if _store is None:
        logger.info("Opening row store at %s", settings.DATABASE_URL)
        _store = SqlAlchemyRowStore(settings.DATABASE_URL)
    return _store


def _durable_tier() -> BlobStore:
    if settings.META_CACHE_DIR:
        return JsonFileBlobStore(settings.META_CACHE_DIR)
    return MemoryBlobStore()


def get_cache() -> MetadataCache:
    global _cache
    if _cache is None:
        _cache = MetadataCache(
            get_store(),
            durable=_durable_tier(),
            ttl_seconds=settings.META_CACHE_TTL_SECONDS,
            version=settings.META_CACHE_VERSION,
            sample_limit=settings.SAMPLE_ROW_LIMIT,
            type_sample_cap=settings.TYPE_SAMPLE_CAP,
        )
    return _cache


def get_ollama() -> Optional[OllamaClient]:
    if not settings.OLLAMA_ENABLED:
        return None
    return OllamaClient()


def configure(store: Optional[RowStore] = None, cache: Optional[MetadataCache] = None) -> None:
    """Replace the shared collaborators (used by tests and embedding applications)."""
    global _store, _cache
    _store = store
    _cache = cache


def browse_tables(store: RowStore) -> list[str]:
    return settings.browse_table_list or store.list_tables()


def shutdown() -> None:
    """Release the row store's connections and forget the shared collaborators."""
    global _store, _cache
    close = getattr(_store, "close", None)
    if close is not None:
        close()
    _store = None
    _cache = None
