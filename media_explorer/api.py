"""
FastAPI backend for Media Explorer.

Exposes import, source management and browsing over HTTP for a local UI.
All requests share one DatabaseConnection (see database.py); its lock
serialises access from FastAPI's worker threads.

Errors are returned as {"detail": "<message>"}:
    404  export path or media id not found
    400  unrecognized export, invalid argument, failed import
    500  store failure
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from media_explorer import analysis
from media_explorer.config import get_config
from media_explorer.database import DatabaseConnection
from media_explorer.errors import (
    MediaExplorerError,
    MediaNotFoundError,
    PathNotFoundError,
    StoreError,
)
from media_explorer.etl import pipeline
from media_explorer.etl.pipeline import ImportResult
from media_explorer.queries import SORT_DATE_DESC, MediaFilters

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

_db: Optional[DatabaseConnection] = None
_db_lock = threading.Lock()


def get_db() -> DatabaseConnection:
    """
    Get the shared store connection, opening it on first use.

    Raises HTTPException(503) if the store cannot be opened.
    """
    global _db
    with _db_lock:
        if _db is None:
            db = DatabaseConnection(get_config())
            try:
                db.connect()
            except sqlite3.Error as e:
                raise HTTPException(status_code=503, detail=f"Store unavailable: {e}") from e
            _db = db
        return _db


def close_db() -> None:
    """Close the shared store connection, if open."""
    global _db
    with _db_lock:
        if _db is not None:
            _db.close()
            _db = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_db()


app = FastAPI(
    title="Media Explorer API",
    version="0.1.0",
    description="Import chat exports and browse their photos, videos and gifs in context.",
    lifespan=lifespan,
)

# Local dev CORS defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        get_config().allowed_origin,
        "http://localhost:5173",
        "http://127.0.0.1:5174",
        "http://localhost:5174",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_code_for(error: Exception) -> int:
    """HTTP status for a project error."""
    if isinstance(error, (PathNotFoundError, MediaNotFoundError)):
        return 404
    if isinstance(error, StoreError):
        return 500
    return 400


@app.exception_handler(MediaExplorerError)
async def media_explorer_error_handler(request: Request, exc: MediaExplorerError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content={"detail": str(exc)})


@app.exception_handler(sqlite3.Error)
async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.error(f"Store error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": f"Store error: {exc}"})


class ImportRequest(BaseModel):
    paths: List[str]
    context_window: Optional[int] = None


class AddSourceRequest(BaseModel):
    path: str
    context_window: Optional[int] = None


def _context_window(requested: Optional[int]) -> int:
    return get_config().context_window if requested is None else requested


def _import_response(result: ImportResult) -> Dict[str, Any]:
    """Stats of a successful import; failed imports become a 400."""
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return {
        **result.stats,
        "skipped_conversations": result.skipped_conversations,
        "sources": result.sources,
        "duration_seconds": result.duration_seconds,
    }


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check."""
    return {"status": "ok", "db_path": get_config().db_path_str}


@app.get("/status")
def status(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    """Whether any media has been imported."""
    return analysis.get_import_status(db)


@app.post("/import")
def import_exports(
    request: ImportRequest, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    """Import one or more exports in a single transaction."""
    result = pipeline.import_exports(db, request.paths, _context_window(request.context_window))
    return _import_response(result)


@app.post("/sources")
def add_source(
    request: AddSourceRequest, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    """Import (or re-import) one export."""
    result = pipeline.add_source(db, request.path, _context_window(request.context_window))
    return _import_response(result)


@app.delete("/sources")
def remove_source(
    path: str = Query(..., min_length=1), db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    """Remove everything imported from one export."""
    removed = pipeline.remove_source(db, path)
    return {"removed_conversations": removed}


@app.get("/sources")
def sources(db: DatabaseConnection = Depends(get_db)) -> List[Dict[str, Any]]:
    """List imported sources."""
    return analysis.list_sources(db)


@app.get("/detect-format")
def detect_format(path: str = Query(..., min_length=1)) -> Dict[str, Any]:
    """Detect whether a folder is a Facebook or a Messenger export."""
    return {"format": pipeline.detect_format(path).value}


@app.get("/conversations")
def conversations(db: DatabaseConnection = Depends(get_db)) -> List[Dict[str, Any]]:
    """List conversations with media counts."""
    return analysis.list_conversations(db)


@app.get("/senders")
def senders(db: DatabaseConnection = Depends(get_db)) -> List[Dict[str, Any]]:
    """List senders with media counts."""
    return analysis.list_senders(db)


@app.get("/media")
def media(
    conversation_id: Optional[int] = None,
    sender_id: Optional[int] = None,
    file_type: Optional[str] = None,
    month: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    search: Optional[str] = None,
    sort: str = SORT_DATE_DESC,
    limit: Optional[int] = Query(default=None, ge=0),
    offset: Optional[int] = Query(default=None, ge=0),
    db: DatabaseConnection = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List media matching the given filters."""
    filters = MediaFilters(
        conversation_id=conversation_id,
        sender_id=sender_id,
        file_type=file_type,
        month=month,
        search=search,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return analysis.list_media(db, filters)


@app.get("/media/{media_id}/context")
def media_context(media_id: int, db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    """A media item with the messages around it."""
    return analysis.get_context(db, media_id)


@app.get("/timeline")
def timeline(db: DatabaseConnection = Depends(get_db)) -> List[Dict[str, Any]]:
    """Media counts per month, newest first."""
    return analysis.get_timeline(db)


@app.get("/storage")
def storage(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    """Size of the store on disk."""
    return analysis.get_storage_info(db)


@app.delete("/data")
def clear_data(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    """Delete everything and compact the store."""
    pipeline.clear_all(db)
    return {"status": "cleared"}


def mime_type_for(path: Path) -> str:
    """MIME type of a media file, from its extension."""
    extension = path.suffix.lower().lstrip(".")
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def _is_registered_media(db: DatabaseConnection, file_path: str) -> bool:
    rows = db.execute_query("SELECT 1 FROM media WHERE file_path = ? LIMIT 1;", (file_path,))
    return bool(rows)


@app.get("/files/{file_path:path}")
def media_file(file_path: str, db: DatabaseConnection = Depends(get_db)) -> Response:
    """
    Serve the bytes of an imported media file.

    The path arrives percent-encoded and is decoded by the router. Only files
    recorded in the media table are served.
    """
    path = Path(file_path if file_path.startswith("/") else f"/{file_path}")
    if not _is_registered_media(db, str(path)) or not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    try:
        content = path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to read media file {path}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to read file: {e}") from e

    return Response(content=content, media_type=mime_type_for(path))
