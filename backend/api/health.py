"""GET /api/health — system dependency check."""
import logging
from fastapi import APIRouter

from api.deps import get_ollama, get_store
from core.exceptions import RowStoreError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    store_status = _check_row_store()
    ollama_status = _check_ollama()
    overall = "ok" if store_status["status"] == "up" and ollama_status["status"] != "down" else "degraded"
    return {
        "status": overall,
        "services": {
            "row_store": store_status,
            "ollama":    ollama_status,
        },
    }


def _check_row_store() -> dict:
    try:
        get_store().ping()
        return {"status": "up", "error": None}
    except RowStoreError as e:
        return {"status": "down", "error": e.message}


def _check_ollama() -> dict:
    ollama = get_ollama()
    if ollama is None:
        return {"status": "disabled", "error": None}
    with ollama:
        ok, detail = ollama.is_healthy()
    if ok:
        return {"status": "up", "model": detail}
    return {"status": "down", "error": detail}
