"""
api/main.py -- FastAPI application factory for SecretShare.

create_app(settings) is the single place where the app is assembled: it
receives an explicitly constructed Settings object, wires the middleware
stack, the JSON and HTML routers, the static files and the exception
handlers. asgi.py and main.py call it with get_settings(); tests call it with
their own Settings(...).

Middleware stack (outermost to innermost):
  1. log_requests          -- one log line per request with latency
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. SessionMiddleware     -- carries authlib's OAuth state between redirect
                              and callback (not the login session)

Lifespan opens the user store and builds the OAuth registry from settings on
startup, and closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import configure_limiter, limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.exceptions import StoreUnavailable
from auth.oauth import build_oauth
from auth.store import UserStore
from core.config import Settings
from web.routes import router as web_router
from web.routes import templates

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("secretshare.api")

_STATIC_DIR = Path(__file__).resolve().parent.parent / "web" / "static"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store and OAuth registry for the server lifetime.

    Everything before yield runs on startup; everything after on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info("SecretShare starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.oauth = build_oauth(settings)
    logger.info("User store initialized")

    yield

    app.state.user_store.close()
    logger.info("SecretShare shutdown complete")


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------


def _error_response(request: Request, status_code: int, code: str, message: str) -> Response:
    """JSON envelope under /api/, HTML error page everywhere else."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
        )
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> Response:
    """Answer store outages with an explicit 503 instead of leaving the request hanging."""
    logger.error("User store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(
        request,
        503,
        "store_unavailable",
        "The service is temporarily unavailable. Please try again shortly.",
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return 429 when a rate limit is exceeded, with Retry-After in seconds."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(request, 429, "rate_limited", "Too many attempts. Please wait and try again.")
    response.headers["Retry-After"] = str(retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    return _error_response(request, 422, "validation_error", "Request validation failed.")


async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render HTTP exceptions, including the 404 for unknown paths.

    get_current_user() raises with detail={"code", "message"}; use it as the
    error body directly rather than stringifying the dict.
    """
    if isinstance(exc.detail, dict):
        code = exc.detail.get("code", f"http_{exc.status_code}")
        message = exc.detail.get("message", "")
    else:
        code, message = f"http_{exc.status_code}", str(exc.detail)
    response = _error_response(request, exc.status_code, code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unexpected server errors.

    The traceback goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(request, 500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings) -> FastAPI:
    """Build a SecretShare app bound to the given settings."""
    app = FastAPI(
        title="SecretShare",
        description="Share a secret anonymously. Local, Google and Facebook sign-in.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings

    # Starlette wraps in reverse registration order: the last one added is
    # the outermost. Register innermost first.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        same_site="lax",
        https_only=settings.secure_cookies,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    # slowapi looks for app.state.limiter by convention.
    configure_limiter(settings)
    app.state.limiter = limiter

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/api/v1/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Liveness plus a database round-trip. No authentication, no rate limit."""
        db_ok = request.app.state.user_store.ping()
        return HealthResponse(
            status="ok" if db_ok else "degraded",
            version=__version__,
            components={"app": "ok", "database": "ok" if db_ok else "error"},
        )

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
    app.include_router(web_router, tags=["Web UI"])
    app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")
    return app
