"""
/api/sessions — stateful grid sessions: open a table, page/sort/search,
scroll, edit cells optimistically, create/delete rows and undo the last delete.
"""
import logging
import threading
import time
from typing import Callable, Optional
from fastapi import APIRouter, HTTPException

from api.deps import get_cache, get_store
from config import settings
from core.browser import BrowserSession
from core.exceptions import EditInProgressError, MissingIdentityError, NoTableSelectedError
from models.browse import (
    CellEditRequest,
    CreateRowRequest,
    FollowReferenceRequest,
    OpenTableRequest,
    RowDetail,
    RowQueryRequest,
    ScrollRequest,
    SessionCreateRequest,
    SessionState,
    VirtualWindow,
)
from models.errors import ClassifiedError

router = APIRouter()
logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-memory session_id → BrowserSession map. Sessions idle for longer than
    `idle_seconds` are dropped on the next access; at `max_sessions` the least
    recently used one is closed to make room.
    """

    def __init__(self, max_sessions: int, idle_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_sessions = max(1, max_sessions)
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._sessions: dict[str, BrowserSession] = {}
        self._last_used: dict[str, float] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def sweep(self) -> int:
        cutoff = self.clock() - self.idle_seconds
        with self._lock:
            expired = [sid for sid, used in self._last_used.items() if used < cutoff]
            for sid in expired:
                self.remove(sid)
        if expired:
            logger.info("Expired %d idle session(s)", len(expired))
        return len(expired)

    def add(self, session: BrowserSession) -> None:
        with self._lock:
            self.sweep()
            while len(self._sessions) >= self.max_sessions:
                oldest = min(self._last_used, key=self._last_used.get)
                logger.info("Session limit (%d) reached, closing %s", self.max_sessions, oldest)
                self.remove(oldest)
            self._sessions[session.session_id] = session
            self._last_used[session.session_id] = self.clock()

    def get(self, session_id: str) -> Optional[BrowserSession]:
        with self._lock:
            self.sweep()
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = self.clock()
            return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            self._last_used.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None


_sessions = SessionRegistry(settings.MAX_SESSIONS, settings.SESSION_IDLE_SECONDS)


def get_session(session_id: str) -> BrowserSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(404, detail=f"Session '{session_id}' not found.")
    return session


def _mutation_response(session: BrowserSession, error: Optional[ClassifiedError]) -> dict:
    return {"ok": error is None, "error": error, "state": session.state()}


@router.post("/sessions", response_model=SessionState, status_code=201)
def create_session(req: SessionCreateRequest):
    session = BrowserSession(
        get_store(),
        get_cache(),
        owner_id=req.owner_id,
        page_size=settings.DEFAULT_PAGE_SIZE,
        row_height=settings.ROW_HEIGHT_PX,
        overscan=settings.OVERSCAN_ROWS,
        search_max_columns=settings.SEARCH_MAX_COLUMNS,
        debounce_seconds=settings.SEARCH_DEBOUNCE_MS / 1000,
        owner_column=settings.OWNER_COLUMN,
    )
    _sessions.add(session)
    return session.state()


@router.get("/sessions/{session_id}", response_model=SessionState)
def read_session(session_id: str):
    return get_session(session_id).state()


@router.delete("/sessions/{session_id}")
def close_session(session_id: str):
    if not _sessions.remove(session_id):
        raise HTTPException(404, detail=f"Session '{session_id}' not found.")
    return {"message": f"Session '{session_id}' closed."}


@router.post("/sessions/{session_id}/open", response_model=SessionState)
def open_table(session_id: str, req: OpenTableRequest):
    session = get_session(session_id)
    session.open_table(req.table_name)
    return session.state()


@router.post("/sessions/{session_id}/rows/query", response_model=SessionState)
def query_rows(session_id: str, req: RowQueryRequest):
    session = get_session(session_id)
    try:
        session.query(
            page=req.page,
            page_size=req.page_size,
            sort_column=req.sort_column,
            sort_direction=req.sort_direction,
            search=req.search,
        )
    except NoTableSelectedError as e:
        raise HTTPException(409, detail=str(e))
    return session.state()


@router.post("/sessions/{session_id}/scroll", response_model=VirtualWindow)
def scroll(session_id: str, req: ScrollRequest):
    return get_session(session_id).scroll(req.scroll_top, req.viewport_height)


@router.patch("/sessions/{session_id}/cells")
def edit_cell(session_id: str, req: CellEditRequest):
    session = get_session(session_id)
    try:
        error = session.commit_edit(req.row_index, req.column, req.value)
    except NoTableSelectedError as e:
        raise HTTPException(409, detail=str(e))
    except EditInProgressError as e:
        raise HTTPException(409, detail=str(e))
    except MissingIdentityError as e:
        raise HTTPException(422, detail=str(e))
    except IndexError:
        raise HTTPException(404, detail=f"Row {req.row_index} is not loaded.")
    return _mutation_response(session, error)


@router.post("/sessions/{session_id}/rows")
def create_row(session_id: str, req: CreateRowRequest):
    session = get_session(session_id)
    try:
        error = session.create_row(req.values)
    except NoTableSelectedError as e:
        raise HTTPException(409, detail=str(e))
    return _mutation_response(session, error)


@router.get("/sessions/{session_id}/rows/template")
def create_template(session_id: str):
    return get_session(session_id).create_template()


@router.get("/sessions/{session_id}/rows/{row_index}", response_model=RowDetail)
def row_detail(session_id: str, row_index: int):
    session = get_session(session_id)
    try:
        return session.row_detail(row_index)
    except IndexError:
        raise HTTPException(404, detail=f"Row {row_index} is not loaded.")


@router.delete("/sessions/{session_id}/rows/{row_index}")
def delete_row(session_id: str, row_index: int):
    session = get_session(session_id)
    try:
        error = session.delete_row(row_index)
    except NoTableSelectedError as e:
        raise HTTPException(409, detail=str(e))
    except MissingIdentityError as e:
        raise HTTPException(422, detail=str(e))
    except IndexError:
        raise HTTPException(404, detail=f"Row {row_index} is not loaded.")
    return _mutation_response(session, error)


@router.post("/sessions/{session_id}/undo-delete")
def undo_delete(session_id: str):
    session = get_session(session_id)
    if session.last_deleted is None:
        raise HTTPException(409, detail="Nothing to undo.")
    return _mutation_response(session, session.undo_delete())


@router.post("/sessions/{session_id}/follow", response_model=SessionState)
def follow_reference(session_id: str, req: FollowReferenceRequest):
    session = get_session(session_id)
    try:
        session.follow_reference(req.column)
    except KeyError as e:
        raise HTTPException(404, detail=str(e.args[0]))
    return session.state()
