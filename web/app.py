"""HTTP API over project discovery — consumed by the UI layer.

Routes:
  GET    /api/projects                                   -> all projects with recent sessions
  POST   /api/projects                                   -> create + register a project
  PUT    /api/projects/{project}/rename                  -> set or clear display name
  DELETE /api/projects/{project}                         -> delete an empty project
  GET    /api/projects/{project}/sessions?limit&offset   -> paginated sessions
  GET    /api/projects/{project}/sessions/{sid}/messages -> raw session entries
  DELETE /api/projects/{project}/sessions/{sid}          -> strip a session from the logs

All API errors return consistent JSON: {"error": "message", "code": "ERROR_CODE"}
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Ensure the discovery package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from discovery.models import to_json
from discovery.service import ProjectDiscovery
from discovery.settings import Settings
from discovery.validation import ErrorKind, ProjectError

logger = logging.getLogger(__name__)

app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

_discovery: ProjectDiscovery | None = None


def get_discovery() -> ProjectDiscovery:
    """One service (and so one set of caches) per process."""
    global _discovery
    if _discovery is None:
        _discovery = ProjectDiscovery(Settings.from_env())
    return _discovery


class AddProjectRequest(BaseModel):
    path: str
    display_name: str | None = None


class RenameProjectRequest(BaseModel):
    display_name: str | None = None


# ---------------------------------------------------------------------------
# Error response helper
# ---------------------------------------------------------------------------

_STATUS_BY_KIND = {
    ErrorKind.ALREADY_REGISTERED: 409,
    ErrorKind.PROJECT_NOT_EMPTY: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OUT_OF_SPACE: 507,
    ErrorKind.READ_ONLY_FILESYSTEM: 500,
    ErrorKind.RESOURCE_EXHAUSTED: 503,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.DIRECTORY_CREATION_FAILED: 500,
    ErrorKind.SECURITY_CHECK_FAILED: 500,
}


def _error_response(message: str, code: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message, "code": code}, status_code=status_code)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ProjectError)
async def project_error_handler(request: Request, exc: ProjectError):
    status_code = _STATUS_BY_KIND.get(exc.kind, 400)
    if status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc)
    else:
        logger.warning("%s on %s: %s", exc.kind, request.url.path, exc)
    return _error_response(str(exc), str(exc.kind), status_code)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("ValueError on %s: %s", request.url.path, exc)
    return _error_response(str(exc), "VALIDATION_ERROR", 400)


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
    return _error_response("Internal server error", "INTERNAL_ERROR", 500)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@app.get("/api/projects")
def api_projects(discovery: ProjectDiscovery = Depends(get_discovery)):
    return JSONResponse(to_json(discovery.list_projects()))


@app.post("/api/projects")
def api_add_project(body: AddProjectRequest, discovery: ProjectDiscovery = Depends(get_discovery)):
    result = discovery.add_project(body.path, body.display_name)
    status_code = 201 if result.created else 200
    return JSONResponse(to_json(result), status_code=status_code)


@app.put("/api/projects/{project}/rename")
def api_rename_project(
    project: str,
    body: RenameProjectRequest,
    discovery: ProjectDiscovery = Depends(get_discovery),
):
    entry = discovery.rename_project(project, body.display_name)
    return JSONResponse({"project": project, "display_name": entry.display_name if entry else None})


@app.delete("/api/projects/{project}")
def api_delete_project(project: str, discovery: ProjectDiscovery = Depends(get_discovery)):
    discovery.delete_project(project)
    return JSONResponse({"project": project, "status": "deleted"})


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@app.get("/api/projects/{project}/sessions")
def api_sessions(
    project: str,
    limit: int = Query(5, ge=0, le=500),
    offset: int = Query(0, ge=0),
    discovery: ProjectDiscovery = Depends(get_discovery),
):
    return JSONResponse(to_json(discovery.list_sessions(project, limit, offset)))


@app.get("/api/projects/{project}/sessions/{session_id}/messages")
def api_session_messages(
    project: str,
    session_id: str,
    limit: int | None = Query(None, ge=0, le=5000),
    offset: int = Query(0, ge=0),
    discovery: ProjectDiscovery = Depends(get_discovery),
):
    page = discovery.get_session_messages(project, session_id, limit, offset)
    return JSONResponse(to_json(page))


@app.delete("/api/projects/{project}/sessions/{session_id}")
def api_delete_session(
    project: str,
    session_id: str,
    discovery: ProjectDiscovery = Depends(get_discovery),
):
    rewritten = discovery.delete_session(project, session_id)
    return JSONResponse({"session_id": session_id, "files_rewritten": rewritten})
