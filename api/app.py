"""
FastAPI Application Factory
============================

Creates and configures the FastAPI app serving the classification API.

ARCHITECTURE:
------------
┌─────────────────────────────────────────────────────────────────┐
│                        FastAPI App                               │
│  ┌─────────────┐  ┌─────────────┐  ┌─────────────────────────┐ │
│  │   /health   │  │    /task    │  │   Middleware            │ │
│  │   /status   │  │             │  │   - CORS                │ │
│  │   /ready    │  │             │  │   - Exception Handler   │ │
│  │   /live     │  │             │  │   - Request Logging     │ │
│  └─────────────┘  └─────────────┘  └─────────────────────────┘ │
│                                                                  │
│  ┌──────────────────────────────────────────────────────────┐  │
│  │                    Lifespan Manager                       │  │
│  │  STARTUP:  Store → Factory → Registry → Orchestrator     │  │
│  │  SHUTDOWN: Close HTTP sessions → Stop worker pool        │  │
│  └──────────────────────────────────────────────────────────┘  │
└─────────────────────────────────────────────────────────────────┘

Every error response has the same body as a failed task:
    {"error": "<message>", "solved": false}
"""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Config, get_config
from core.errors import SolverError

logger = logging.getLogger(__name__)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "solved": False},
    )


def create_app(lifespan: Optional[Callable] = None, config: Optional[Config] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        lifespan: Async context manager for startup/shutdown events
        config: Configuration; defaults to the global one

    Returns:
        Configured FastAPI app
    """
    config = config or get_config()

    app = FastAPI(
        title="Funcaptcha Classification Solver",
        description="Image classification API for Funcaptcha challenges",
        version="1.0.0",
        docs_url="/docs" if config.server.debug else None,
        redoc_url="/redoc" if config.server.debug else None,
        lifespan=lifespan,
    )
    app.state.config = config

    # ==========================================================================
    # CORS Middleware - Allow all origins for API access
    # ==========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Request Logging Middleware
    # ==========================================================================
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests with timing"""
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time

        # Skip probes for cleaner logs
        if request.url.path not in ("/health", "/ready", "/live"):
            logger.info(
                f"{request.method} {request.url.path} - "
                f"{response.status_code} - {duration:.3f}s"
            )

        return response

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors"""
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid request: {location} {first.get('msg', '')}".strip()
        else:
            message = "Invalid request"
        return error_response(message, 400)

    @app.exception_handler(SolverError)
    async def solver_exception_handler(request: Request, exc: SolverError):
        """Handle solver errors raised outside the orchestrator"""
        return error_response(exc.message, exc.status_code)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return error_response("Internal server error", 500)

    # ==========================================================================
    # Register Routers
    # ==========================================================================
    from .routes.health import router as health_router
    from .routes.task import router as task_router

    app.include_router(health_router, tags=["Health"])
    app.include_router(task_router, tags=["Task"])

    logger.info(f"FastAPI app created, debug={config.server.debug}")

    return app
