"""
clipfeed: FastAPI application for the short-video social backend.
"""
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from clipfeed.config import settings
from clipfeed.database import close_db, init_db
from clipfeed.errors import ClipfeedError, StoreError
from clipfeed.routers import auth, comments, users, videos

# ── Logging ──────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL)
    ),
)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the entity store at startup, release it at shutdown."""
    logger.info("Starting clipfeed", app=settings.APP_NAME)
    init_db()
    yield
    close_db()
    logger.info("Shutting down clipfeed")


app = FastAPI(title="clipfeed", description="Short-video social backend", lifespan=lifespan)


# ── Error handling ───────────────────────────────────────────────────────

_KIND_BY_STATUS = {
    status.HTTP_401_UNAUTHORIZED: "Unauthenticated",
    status.HTTP_403_FORBIDDEN: "NotOwner",
    status.HTTP_404_NOT_FOUND: "NotFound",
    status.HTTP_405_METHOD_NOT_ALLOWED: "MethodNotAllowed",
}


def _error(status_code, kind, message, headers=None, **extra):
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "kind": kind, **extra},
        headers=headers,
    )


@app.exception_handler(ClipfeedError)
async def clipfeed_error_handler(request: Request, exc: ClipfeedError):
    return _error(exc.status_code, exc.kind, exc.message)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Unhandled store failure", path=request.url.path, exc_info=exc)
    return _error(StoreError.status_code, StoreError.kind, StoreError.default_message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return _error(status.HTTP_400_BAD_REQUEST, "ValidationError", message, errors=jsonable_encoder(errors))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = _KIND_BY_STATUS.get(exc.status_code, "ValidationError" if exc.status_code == 400 else "Error")
    return _error(exc.status_code, kind, exc.detail, headers=getattr(exc, "headers", None))


# ── Routes ───────────────────────────────────────────────────────────────

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(videos.router)
app.include_router(comments.router)


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok"}
