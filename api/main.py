"""
FastAPI Application
===================

Main FastAPI application for the SQL analyst service.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes.chat import router as chat_router
from api.routes.health import router as health_router
from api.schemas import ErrorResponse
from sql_analyst.agent import SQLAnalystAgent
from sql_analyst.config import get_settings
from sql_analyst.errors import SQLAnalystError
from sql_analyst.observability.logging_config import get_logger, setup_logging
from sql_analyst.observability.metrics import latest_metrics, set_app_info

logger = get_logger(__name__)


def create_agent() -> SQLAnalystAgent:
    """Create the agent from environment settings."""
    return SQLAnalystAgent(settings=get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    settings = get_settings()
    setup_logging()
    set_app_info(__version__, settings.environment)
    logger.info("Starting SQL analyst API", version=__version__, environment=settings.environment)

    # Tests may install their own agent before startup
    if getattr(app.state, "agent", None) is None:
        app.state.agent = create_agent()

    yield

    logger.info("Shutting down SQL analyst API")
    app.state.agent.executor.close()


async def metrics_endpoint(request: Request) -> Response:
    """Expose Prometheus metrics."""
    return Response(content=latest_metrics(), media_type=CONTENT_TYPE_LATEST)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SQL Analyst API",
        description=(
            "Phase-gated natural-language analyst. Plans against a semantic "
            "catalog, builds and executes SQL with automatic repair, and "
            "reports the results."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(chat_router)
    app.add_route("/metrics", metrics_endpoint)

    @app.exception_handler(SQLAnalystError)
    async def analyst_exception_handler(request: Request, exc: SQLAnalystError) -> JSONResponse:
        """Report analyst failures raised before a stream starts."""
        request_id = getattr(request.state, "request_id", None)
        logger.error("request_failed", error=type(exc).__name__, message=str(exc))
        return JSONResponse(
            status_code=502,
            content=ErrorResponse(
                error=type(exc).__name__,
                message=str(exc),
                request_id=request_id,
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        request_id = getattr(request.state, "request_id", None)
        logger.exception("unhandled_exception", error=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
