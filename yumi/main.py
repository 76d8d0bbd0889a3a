"""
Yumi — recipe-sharing social API.

App factory: logging, lifespan, middleware, error handlers and router
wiring. Every route lives in yumi/routers/.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import APP_VERSION, settings
from .http_client import close_clients
from .logging_config import setup_logging
from .rate_limit import limiter
from .schemas.errors import ErrorResponse
from .startup import run_startup_migrations

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    run_startup_migrations()
    logger.info("Yumi API v{} ready", APP_VERSION)
    yield
    await close_clients()


app = FastAPI(title="Yumi API", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.app_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Middleware ────────────────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request with a short ID, log it, and set security headers."""
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} -> {} ({:.0f}ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["X-API-Version"] = "v1"
    return response


# ── Error handlers ────────────────────────────────────────────────────


def _error(request: Request, status_code: int, message: str, detail: list | None = None) -> JSONResponse:
    body = ErrorResponse(
        error=message,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def validation_message(errors: list) -> str:
    """First validation error as a single human-readable message."""
    if not errors:
        return "Datos de entrada no válidos"
    first = errors[0]
    if first.get("type") == "missing" and first.get("loc"):
        return f"El campo '{first['loc'][-1]}' es obligatorio"
    msg = first.get("msg") or ""
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    return "Datos de entrada no válidos"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]
    return _error(request, 400, validation_message(errors), detail)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on {} {}: {}", request.method, request.url.path, exc.orig)
    return _error(request, 409, "El recurso entra en conflicto con uno existente")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error(request, 500, "Error interno del servidor")


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health")
@limiter.exempt
def health():
    return {"status": "ok", "version": APP_VERSION}


from .routers.auth import router as auth_router  # noqa: E402
from .routers.calculator import router as calculator_router  # noqa: E402
from .routers.collections import router as collections_router  # noqa: E402
from .routers.events import router as events_router  # noqa: E402
from .routers.feedback import router as feedback_router  # noqa: E402
from .routers.meal_plans import router as meal_plans_router  # noqa: E402
from .routers.recipes import router as recipes_router  # noqa: E402
from .routers.shopping_lists import router as shopping_lists_router  # noqa: E402
from .routers.taxonomy import router as taxonomy_router  # noqa: E402
from .routers.uploads import router as uploads_router  # noqa: E402
from .routers.users import router as users_router  # noqa: E402

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(recipes_router)
app.include_router(feedback_router)
app.include_router(taxonomy_router)
app.include_router(collections_router)
app.include_router(events_router)
app.include_router(meal_plans_router)
app.include_router(shopping_lists_router)
app.include_router(calculator_router)
app.include_router(uploads_router)
