"""
Main FastAPI application for the Grow-up coaching portal.
Serves health, auth, content, payments, admin and metrics.
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from portal.api.routes import admin, auth, content, health, payments
from portal.core.config import settings
from portal.core.logging import configure_logging
from portal.db.session import SessionLocal, init_db
from portal.services.errors import (
    AccountBlocked,
    DuplicateKey,
    InvalidCredentials,
    InvalidField,
    InvalidOperation,
    NoSession,
    NotFound,
    PortalError,
    Unauthorized,
)
from portal.services.seed import seed
from portal.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)

# most specific first; StaleSession is a NoSession
STATUS_CODES: list[tuple[type[PortalError], int]] = [
    (NotFound, 404),
    (DuplicateKey, 409),
    (InvalidCredentials, 401),
    (NoSession, 401),
    (AccountBlocked, 403),
    (Unauthorized, 403),
    (InvalidField, 422),
    (InvalidOperation, 409),
]


def status_for(exc: PortalError) -> int:
    for kind, code in STATUS_CODES:
        if isinstance(exc, kind):
            return code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    if settings.seed_on_startup:
        db = SessionLocal()
        try:
            seed(db)
        finally:
            db.close()
    logger.info("portal_started", extra={"reason": settings.app_env})
    yield


app = FastAPI(
    title="Grow-up Portal API",
    description="API for the Grow-up coaching portal",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
    started = time.monotonic()
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "latency_ms": round((time.monotonic() - started) * 1000, 1),
        },
    )
    return response


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("storage_error", extra={"path": request.url.path, "error": type(exc).__name__})
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(content.router)
app.include_router(payments.router)
app.include_router(admin.router)
app.include_router(metrics_router)
