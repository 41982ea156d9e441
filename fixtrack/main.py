import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fixtrack.api.assignees import router as assignees_router
from fixtrack.api.audit import router as audit_router
from fixtrack.api.issues import router as issues_router
from fixtrack.api.tenants import router as tenants_router
from fixtrack.api.workflow import router as workflow_router
from fixtrack.core.config import settings
from fixtrack.core.db import get_db, init_db
from fixtrack.core.errors import (
    AlreadyExists,
    ConcurrentModification,
    InvalidPriority,
    InvalidRole,
    InvalidTransition,
    NotFoundError,
    OperationCancelled,
    StorageFailure,
    ValidationFailed,
    WorkflowError,
)
from fixtrack.core.fsm import status_display_name
from fixtrack.core.logging_config import configure_logging

configure_logging(settings)
logger = logging.getLogger("fixtrack.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Issue status workflow for multi-tenant support: transitions, assignments and audit history.",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %s in %.1fms request_id=%s",
        request.method, request.url.path, response.status_code, (time.perf_counter() - started) * 1000, request_id,
    )
    return response


def _error(request: Request, status_code: int, detail, **extra) -> JSONResponse:
    content = {"detail": detail, "request_id": getattr(request.state, "request_id", None)}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, exc.message, identifier=str(exc.identifier))


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    current = status_display_name(exc.from_status) if exc.from_status else None
    attempted = status_display_name(exc.to_status)
    return _error(
        request,
        status.HTTP_409_CONFLICT,
        {
            "error": "Invalid state transition",
            "current_state": exc.from_status,
            "attempted_state": exc.to_status,
            "reason": f"An issue that is {current} cannot move to {attempted}.",
        },
    )


@app.exception_handler(ConcurrentModification)
async def concurrent_modification_handler(request: Request, exc: ConcurrentModification):
    return _error(request, status.HTTP_409_CONFLICT, exc.message, retryable=True)


@app.exception_handler(AlreadyExists)
async def already_exists_handler(request: Request, exc: AlreadyExists):
    return _error(request, status.HTTP_409_CONFLICT, exc.message)


@app.exception_handler(InvalidPriority)
@app.exception_handler(InvalidRole)
@app.exception_handler(ValidationFailed)
async def validation_handler(request: Request, exc: WorkflowError):
    return _error(request, 422, exc.message)


@app.exception_handler(OperationCancelled)
async def cancelled_handler(request: Request, exc: OperationCancelled):
    return _error(request, status.HTTP_408_REQUEST_TIMEOUT, exc.message)


@app.exception_handler(StorageFailure)
async def storage_failure_handler(request: Request, exc: StorageFailure):
    logger.error("Storage failure: %s request_id=%s", exc, getattr(request.state, "request_id", None))
    return _error(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable: Database connection or operational failure")


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error: %s request_id=%s", exc, getattr(request.state, "request_id", None))
    return _error(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable: Database connection or operational failure")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error request_id=%s", getattr(request.state, "request_id", None))
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@app.get("/health", tags=["system"])
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database")
        db_status = "error"
    return {"status": "ok", "database": db_status}


app.include_router(issues_router)
app.include_router(workflow_router)
app.include_router(assignees_router)
app.include_router(audit_router)
app.include_router(tenants_router)
