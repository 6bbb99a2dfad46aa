"""
UI Query - HTTP API
Index hierarchy dumps per device serial and run selector/XPath queries on them
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.routing import APIRouter
from pydantic import BaseModel
from typing import Dict, List, Literal, Optional, Union
import logging
import threading

from .config import QuerySettings, configure_logging, load_settings
from .errors import (
    ElementNotFoundError,
    MalformedSelectorError,
    NotADescendantQueryError,
    SnapshotParseError,
    UiQueryError,
    UnsupportedValueError,
)
from .query import QueryExecutor
from .selector import Selector
from .selector_parser import parse_selector
from .snapshot import MatchedNode, Snapshot
from .xpath_compiler import Scope, compile_selector

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

api_router = APIRouter(prefix="/api", tags=["api"])

_STATUS_BY_ERROR = (
    (ElementNotFoundError, 404),
    (MalformedSelectorError, 400),
    (UnsupportedValueError, 400),
    (SnapshotParseError, 400),
    (NotADescendantQueryError, 400),
)


# ============================================================================
# Per-device snapshot store
# Populated by PUT /snapshots/{serial} and read by the query endpoints.
# ============================================================================

class _SnapshotStore:
    """Thread-safe per-serial store of the latest indexed snapshot."""

    def __init__(self):
        self._lock = threading.Lock()
        self._store: Dict[str, Snapshot] = {}

    def put(self, serial: str, snapshot: Snapshot) -> None:
        with self._lock:
            self._store[serial] = snapshot
        logger.info(f"[store] Snapshot v{snapshot.version} stored for {serial} ({snapshot.node_count} nodes)")

    def get(self, serial: str) -> Optional[Snapshot]:
        with self._lock:
            return self._store.get(serial)

    def invalidate(self, serial: str) -> bool:
        with self._lock:
            return self._store.pop(serial, None) is not None


# ============================================================================
# Request Models
# ============================================================================

class SnapshotRequest(BaseModel):
    xml: str


class CompileRequest(BaseModel):
    selector: str
    match_index: Optional[int] = None
    relative: bool = False


class QueryRequest(BaseModel):
    serial: str
    selector: Optional[str] = None
    xpath: Optional[str] = None
    match_index: Optional[int] = None
    mode: Literal["all", "one"] = "all"
    native: bool = False


class ChildrenRequest(BaseModel):
    serial: str
    node_path: List[int]
    selector: Optional[str] = None
    xpath: Optional[str] = None
    native: bool = False


# ============================================================================
# Helpers
# ============================================================================

def _http_error(error: UiQueryError) -> HTTPException:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _settings(request: Request) -> QuerySettings:
    return request.app.state.settings


def _store(request: Request) -> _SnapshotStore:
    return request.app.state.snapshots


def _snapshot_for(request: Request, serial: str) -> Snapshot:
    snapshot = _store(request).get(serial)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for {serial}. Upload one first.")
    return snapshot


def _query_from(request: Request, selector: Optional[str], xpath: Optional[str],
                native: bool, match_index: Optional[int] = None) -> Union[Selector, str]:
    if (selector is None) == (xpath is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of 'selector' or 'xpath'")
    if xpath is not None:
        if native or match_index is not None:
            raise HTTPException(status_code=400, detail="'native' and 'match_index' apply to selectors only")
        return xpath
    parsed = parse_selector(selector, strict_keys=_settings(request).strict_keys)
    return parsed.at(match_index) if match_index is not None else parsed


def _node_to_dict(node: MatchedNode) -> Dict:
    return {
        'tag': node.name,
        'attributes': node.attributes,
        'bounds_computed': node.bounds,
        'node_path': list(node.path),
    }


# ============================================================================
# Endpoints
# ============================================================================

@api_router.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "Android UI Query API",
        "version": API_VERSION,
        "status": "running",
    }


@api_router.put("/snapshots/{serial}")
async def put_snapshot(serial: str, body: SnapshotRequest, request: Request):
    """
    Index a UI hierarchy dump and make it the current snapshot for ``serial``.
    """
    try:
        snapshot = Snapshot(body.xml)
        _store(request).put(serial, snapshot)
        return {
            "success": True,
            "snapshot_id": snapshot.snapshot_id,
            "version": snapshot.version,
            "total_nodes": snapshot.node_count,
        }
    except UiQueryError as e:
        logger.error(f"Error indexing snapshot for {serial}: {e}")
        raise _http_error(e)


@api_router.get("/snapshots/{serial}/xml")
async def get_snapshot_xml(serial: str, request: Request):
    """Return the raw XML behind the current snapshot of a device."""
    snapshot = _snapshot_for(request, serial)
    return Response(
        content=snapshot.xml,
        media_type="application/xml",
        headers={"Content-Disposition": f'attachment; filename="hierarchy-{serial}.xml"'},
    )


@api_router.delete("/snapshots/{serial}")
async def delete_snapshot(serial: str, request: Request):
    if not _store(request).invalidate(serial):
        raise HTTPException(status_code=404, detail=f"No snapshot for {serial}")
    return {"success": True, "serial": serial}


@api_router.post("/compile")
async def compile_query(body: CompileRequest, request: Request):
    """
    Compile selector text into XPath without touching any snapshot.
    ``relative`` compiles for a descendant search (``.//*``).
    """
    try:
        selector = parse_selector(body.selector, strict_keys=_settings(request).strict_keys)
        if body.match_index is not None:
            selector = selector.at(body.match_index)
        scope = Scope.descendants_of(()) if body.relative else Scope.document()
        compiled = compile_selector(selector, scope)
        return {"success": True, "xpath": compiled.xpath, "absolute": compiled.absolute}
    except UiQueryError as e:
        logger.error(f"Error compiling selector {body.selector!r}: {e}")
        raise _http_error(e)


@api_router.post("/query")
async def run_query(body: QueryRequest, request: Request):
    """
    Run a selector or XPath query against the current snapshot of a device.

    ``mode`` "all" returns every match (possibly none); "one" returns the
    first match and answers 404 when there is none.
    """
    try:
        snapshot = _snapshot_for(request, body.serial)
        query = _query_from(request, body.selector, body.xpath, body.native, body.match_index)
        executor = QueryExecutor(snapshot)

        if body.mode == "one":
            matches = [executor.find_one(query, native=body.native)]
        else:
            matches = executor.find_all(query, native=body.native)

        logger.info(f"Query on {body.serial} (v{snapshot.version}) found {len(matches)} match(es)")
        return {
            "success": True,
            "version": snapshot.version,
            "count": len(matches),
            "matches": [_node_to_dict(node) for node in matches],
        }
    except HTTPException:
        raise
    except UiQueryError as e:
        logger.error(f"Error in query for {body.serial}: {e}")
        raise _http_error(e)


@api_router.post("/children")
async def find_children(body: ChildrenRequest, request: Request):
    """Run a query scoped to the descendants of the node at ``node_path``."""
    try:
        snapshot = _snapshot_for(request, body.serial)
        parent = snapshot.node_at(body.node_path)
        query = _query_from(request, body.selector, body.xpath, body.native)
        matches = QueryExecutor(snapshot).find_children(parent, query, native=body.native)
        return {
            "success": True,
            "version": snapshot.version,
            "parent": _node_to_dict(parent),
            "count": len(matches),
            "matches": [_node_to_dict(node) for node in matches],
        }
    except HTTPException:
        raise
    except UiQueryError as e:
        logger.error(f"Error in child query for {body.serial}: {e}")
        raise _http_error(e)


# ============================================================================
# App Factory & Server Startup
# ============================================================================

def create_app(settings: Optional[QuerySettings] = None) -> FastAPI:
    """Create the FastAPI app with its own snapshot store."""
    app = FastAPI(title="Android UI Query API", version=API_VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:8000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings or load_settings()
    app.state.snapshots = _SnapshotStore()
    app.include_router(api_router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting Android UI Query API Server...")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())
