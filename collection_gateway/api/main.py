"""FastAPI application factory"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from collection_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from collection_gateway.api.registry import SessionRegistry
from collection_gateway.api.v1 import edits, entries, history, sessions
from collection_gateway.domain.exceptions import InvalidOperationError, UnknownReferenceError
from collection_gateway.infrastructure.observability.logging import setup_logging
from collection_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


async def unknown_reference_handler(request: Request, exc: UnknownReferenceError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def invalid_operation_handler(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def create_app(registry: SessionRegistry | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Collection Gateway",
        description="Daily payment-collection reconciliation for field leads",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.sessions = registry or SessionRegistry()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(UnknownReferenceError, unknown_reference_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name, "open_sessions": len(app.state.sessions)}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(sessions.router, prefix="/v1", tags=["sessions"])
    app.include_router(entries.router, prefix="/v1", tags=["entries"])
    app.include_router(edits.router, prefix="/v1", tags=["edits"])
    app.include_router(history.router, prefix="/v1", tags=["history"])

    return app


app = create_app()
