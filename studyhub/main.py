"""
Main FastAPI application for the StudyHub backend.
Handles CORS, request logging middleware, lifespan events, error envelopes
and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studyhub.config import Settings, settings as default_settings
from studyhub.database import Database
from studyhub.routers import ai, auth, blogs, chapters, cheatsheets, health, questions, threads

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------

def _format_validation_errors(exc: RequestValidationError) -> str:
    """Collapse pydantic errors into one readable line."""
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        messages.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "; ".join(messages) or "Invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = _format_validation_errors(exc)
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


def _global_exception_handler(config: Settings):
    async def global_exception_handler(request: Request, exc: Exception):
        """Return the failure envelope for any unhandled exception."""
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=True,
        )
        content = {"success": False, "message": "Server Error"}
        if config.is_development:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    return global_exception_handler


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application around its own database handle."""
    config = config or default_settings
    database = Database(config.DATABASE_URL, echo=config.DATABASE_ECHO)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown event handler."""
        logger.info("=" * 60)
        logger.info("  Starting StudyHub backend …")
        logger.info("=" * 60)

        # Database (required; raises on failure)
        try:
            await database.create_all()
            logger.info("✓ Database connection OK")
        except Exception as exc:
            logger.error("✗ Database connection failed: %s", exc)
            raise

        # AI provider (optional; AI routes fall back without a key)
        if config.GROQ_API_KEY:
            logger.info("✓ AI provider configured (model %s)", config.GROQ_MODEL)
        else:
            logger.warning("⚠ GROQ_API_KEY not set; AI features will use fallbacks")

        logger.info("  StudyHub backend ready on http://%s:%d", config.HOST, config.PORT)
        logger.info("  Health     : http://%s:%d/api/health", config.HOST, config.PORT)
        logger.info("=" * 60)

        yield

        logger.info("Shutting down StudyHub backend …")
        await database.dispose()
        logger.info("✓ Shutdown complete.")

    app = FastAPI(
        title="StudyHub API",
        description=(
            "**StudyHub**: organise study material into chapters and questions, "
            "keep cheatsheets, generate AI mindmaps and practice tests, and "
            "discuss in threads and blogs."
        ),
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.db = database
    app.state.settings = config

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every request with method, path, status code, and elapsed time.
        Attaches an ``X-Process-Time`` header (milliseconds) to every response.
        """
        t0 = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

        # Skip noisy health-check polling from the frontend
        if request.url.path not in ("/api/health", "/"):
            logger.info(
                "%s %s → %d  (%.2f ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )

        response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
        return response

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, _global_exception_handler(config))

    # Routers
    app.include_router(health.router,      prefix="/api/health",      tags=["Health"])
    app.include_router(auth.router,        prefix="/api/auth",        tags=["Auth"])
    app.include_router(chapters.router,    prefix="/api/chapters",    tags=["Chapters"])
    app.include_router(questions.router,   prefix="/api/questions",   tags=["Questions"])
    app.include_router(cheatsheets.router, prefix="/api/cheatsheets", tags=["Cheatsheets"])
    app.include_router(blogs.router,       prefix="/api/blogs",       tags=["Blogs"])
    app.include_router(threads.router,     prefix="/api/threads",     tags=["Threads"])
    app.include_router(ai.router,          prefix="/api/ai",          tags=["AI"])

    @app.get("/", tags=["Root"], include_in_schema=False)
    async def root():
        """API root: basic service info."""
        return {
            "success": True,
            "data": {
                "name": "StudyHub API",
                "version": API_VERSION,
                "docs": "/docs",
                "health": "/api/health",
                "endpoints": {
                    "auth": "/api/auth",
                    "chapters": "/api/chapters",
                    "questions": "/api/questions",
                    "cheatsheets": "/api/cheatsheets",
                    "blogs": "/api/blogs",
                    "threads": "/api/threads",
                    "ai": "/api/ai",
                },
            },
        }

    return app


app = create_app()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "studyhub.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.is_development,
        log_level="info",
    )
