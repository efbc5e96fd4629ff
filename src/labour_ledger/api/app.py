"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labour_ledger.api.routes import (
    events_router,
    health_router,
    labours_router,
    maintenance_router,
)
from labour_ledger.api.routes._results import MutationRejected
from labour_ledger.config import get_settings
from labour_ledger.database import dispose_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Labour Ledger API",
        description="Wage entries, payments and running labour balances",
        version=get_settings().engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(MutationRejected)
    async def mutation_rejected_handler(
        request: Request, exc: MutationRejected
    ) -> JSONResponse:
        """Render a rejected mutation with its status code and field errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.result.error,
                "code": exc.result.status.value.upper(),
                "errors": exc.result.errors,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(labours_router, prefix="/api/v1")
    app.include_router(events_router, prefix="/api/v1")
    app.include_router(maintenance_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
