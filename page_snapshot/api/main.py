"""FastAPI application for the snapshot store.

This module configures the FastAPI application with middleware, error
handling and the snapshot upload and serving routes.
"""

import logging
import time
import uuid
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from page_snapshot import __version__
from page_snapshot.api.routes import serve_router, upload_router
from page_snapshot.api.schemas import ErrorResponse, HealthResponse


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

APP_TITLE = "Page Snapshot API"
APP_DESCRIPTION = """
Stores self-contained HTML snapshots of web pages and serves them by identifier.

* **Upload**: `POST /api/upload` with a plain or packed (gzip + base64) document
* **Serve**: `GET /{id}` returns the document until its expiration time
"""

app_start_time = datetime.utcnow()


def _error_content(request: Request, status_code: int, message: str) -> dict:
    return ErrorResponse(
        error=message,
        code=f"http_{status_code}",
        request_id=getattr(request.state, "request_id", None),
        timestamp=datetime.utcnow()
    ).model_dump(mode='json')


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID", "X-Expires-At", "X-Source-Url"],
    )

    @app.middleware("http")
    async def add_request_id_and_logging(request: Request, call_next):
        """Add request ID and logging middleware."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_host": request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            duration = time.time() - start_time
            logger.info(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "duration_ms": round(duration * 1000, 2),
                }
            )
            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} - {str(e)}",
                extra={
                    "request_id": request_id,
                    "error": str(e),
                    "duration_ms": round(duration * 1000, 2),
                },
                exc_info=True
            )
            raise

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent error format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(request, exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle Starlette HTTP exceptions (unknown routes, wrong methods)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(request, exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        fields = ", ".join(" -> ".join(str(loc) for loc in error["loc"]) for error in exc.errors())
        return JSONResponse(
            status_code=400,
            content=_error_content(request, 400, f"Invalid request: {fields}"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            f"Unhandled exception in request {request_id}: {str(exc)}",
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=_error_content(request, 500, "Internal server error"),
        )

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check():
        """Health check endpoint for monitoring and operational purposes."""
        from page_snapshot.api.routes.snapshots import get_snapshot_service

        try:
            service = get_snapshot_service()
            await service.store.exists("healthcheck")
            storage_status = "healthy"
        except Exception as e:
            logger.warning(f"Storage health check failed: {e}")
            storage_status = "unhealthy"

        return HealthResponse(
            status=storage_status,
            version=__version__,
            timestamp=datetime.utcnow(),
            services={"storage": storage_status},
            uptime_seconds=(datetime.utcnow() - app_start_time).total_seconds()
        )

    app.include_router(upload_router, prefix="/api")
    # Catch-all snapshot route goes last
    app.include_router(serve_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "page_snapshot.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
        access_log=True,
    )
