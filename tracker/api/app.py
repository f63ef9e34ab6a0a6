"""
REST API for the Tracker

Exposes one CRUD surface per resource kind under /api/{kind}. Every request
is scoped to the user named in the identity header.

DESIGN DECISION: Errors always leave as {"error": message}. Store
exceptions are mapped by type in one place (the handlers below), so route
functions only contain the happy path.
"""

from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tracker import __version__
from tracker.audit import AuditLogger, create_correlation_id
from tracker.config import AppSettings, IdentitySettings, get_settings
from tracker.models.resources import ResourceKind
from tracker.orchestrator import ResourceFlow, create_app_components
from tracker.services.identity import MissingIdentityError, resolve_user_key
from tracker.services.storage import (
    DuplicateError,
    NotFoundError,
    ResourceStore,
    StorageError,
    ValidationError,
)


logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def get_flow(request: Request) -> ResourceFlow:
    return request.app.state.flow


def get_kind(kind: str) -> ResourceKind:
    """Path segment to resource kind; unknown kinds are 404."""
    try:
        return ResourceKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown resource: {kind}")


def get_user_key(request: Request) -> str:
    """Scope key for this request (see resolve_user_key)."""
    return resolve_user_key(request.headers, request.app.state.identity_settings)


async def read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")


def register_exception_handlers(app: FastAPI, audit_logger: AuditLogger) -> None:
    """Map the error taxonomy to HTTP responses."""

    @app.exception_handler(MissingIdentityError)
    async def missing_identity_handler(request: Request, exc: MissingIdentityError):
        audit_logger.log_request_rejected(reason=str(exc), status_code=401)
        return _error(401, str(exc))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(400, str(exc), issues=exc.issues)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        issues = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return _error(400, "Invalid request", issues=issues)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(DuplicateError)
    async def duplicate_handler(request: Request, exc: DuplicateError):
        return _error(409, str(exc))

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError):
        return _error(500, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        audit_logger.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path, "method": request.method},
        )
        return _error(500, "Internal server error")


def create_app(
    store: Optional[ResourceStore] = None,
    identity_settings: Optional[IdentitySettings] = None,
    app_settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Store backend; built from STORE_* settings when omitted
        identity_settings: Identity header rules; from IDENTITY_* when omitted
        app_settings: CORS and debug options; from the environment when omitted
    """
    settings = get_settings()
    app_settings = app_settings or settings.app
    flow, audit_logger = create_app_components(store)

    app = FastAPI(
        title="Personal Tracker API",
        version=__version__,
        debug=app_settings.debug_mode,
    )
    app.state.flow = flow
    app.state.identity_settings = identity_settings or settings.identity

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, audit_logger)

    @app.get("/")
    async def health(flow: ResourceFlow = Depends(get_flow)):
        return {"status": "ok", "backend": flow.store.name}

    @app.get("/api/{kind}")
    async def list_records(
        kind: ResourceKind = Depends(get_kind),
        user_key: str = Depends(get_user_key),
        flow: ResourceFlow = Depends(get_flow),
    ):
        records = await flow.list_records(kind, user_key)
        return [record.to_wire() for record in records]

    @app.post("/api/{kind}", status_code=201)
    async def create_record(
        kind: ResourceKind = Depends(get_kind),
        user_key: str = Depends(get_user_key),
        body: Any = Depends(read_body),
        flow: ResourceFlow = Depends(get_flow),
    ):
        record = await flow.create_record(kind, user_key, body, create_correlation_id())
        return record.to_wire()

    @app.put("/api/{kind}/{record_id}")
    async def update_record(
        record_id: str,
        kind: ResourceKind = Depends(get_kind),
        user_key: str = Depends(get_user_key),
        body: Any = Depends(read_body),
        flow: ResourceFlow = Depends(get_flow),
    ):
        record = await flow.update_record(
            kind, user_key, record_id, body, create_correlation_id()
        )
        return record.to_wire()

    @app.delete("/api/{kind}/{record_id}")
    async def delete_record(
        record_id: str,
        kind: ResourceKind = Depends(get_kind),
        user_key: str = Depends(get_user_key),
        flow: ResourceFlow = Depends(get_flow),
    ):
        await flow.delete_record(kind, user_key, record_id, create_correlation_id())
        return {"success": True}

    return app
