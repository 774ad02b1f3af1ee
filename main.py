"""
Funcaptcha Classification Solver - Main Entry Point
===================================================

FastAPI server with proper async lifecycle management.

STARTUP SEQUENCE:
1. Load and validate configuration
2. Build the model store (static release server or S3 bucket)
3. Wire PredictorFactory -> PredictorRegistry -> SolverOrchestrator
4. Refresh the model manifest (update_check only)
5. Start accepting requests

Models are NOT loaded at startup. Each variant's predictor is built on the
first task that needs it and cached for the life of the process.

Run with:
    python main.py

Or for production:
    uvicorn main:app --host 0.0.0.0 --port 8000 --workers 1

NOTE: Use workers=1 because:
- Predictors and their ONNX sessions are process-local
- For scaling, use multiple containers/VMs instead
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from api.app import create_app
from challenges.factory import PredictorFactory
from core.config import load_config, validate_config
from core.registry import PredictorRegistry
from solvers.fallback import FallbackClient
from solvers.orchestrator import SolverOrchestrator
from store.artifacts import ArtifactStore
from store.backends import create_backend
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI Lifespan Context Manager

    Handles startup and shutdown events properly.
    """
    # ==========================================================================
    # STARTUP
    # ==========================================================================
    logger.info("=" * 60)
    logger.info("STARTUP: Initializing Funcaptcha Solver...")
    logger.info("=" * 60)

    config = validate_config(app.state.config)

    # 1. Model store
    logger.info(f"[1/3] Model store: {config.store.kind}, dir={config.model_dir}")
    store = ArtifactStore(
        create_backend(config.store),
        update_check=config.onnx.update_check,
    )

    # 2. Predictors and orchestrator
    logger.info("[2/3] Wiring predictor registry...")
    factory = PredictorFactory(store, config.onnx, config.model_dir)
    registry = PredictorRegistry(factory.build)
    fallback = FallbackClient.from_config(config.fallback)
    orchestrator = SolverOrchestrator(registry, config.solver.limit, fallback=fallback)
    if fallback is not None:
        logger.info(f"[2/3] Fallback provider: {fallback.provider.value}")

    app.state.store = store
    app.state.registry = registry
    app.state.orchestrator = orchestrator

    # 3. Manifest refresh
    if config.onnx.update_check:
        logger.info("[3/3] Refreshing model manifest...")
        try:
            await store.refresh_manifest(config.model_dir)
        except Exception as e:
            logger.error(f"[3/3] Failed to refresh manifest: {e}")
    else:
        logger.info("[3/3] Update check disabled")

    logger.info("=" * 60)
    logger.info("STARTUP COMPLETE - Server ready to accept requests")
    logger.info("=" * 60)

    yield

    # ==========================================================================
    # SHUTDOWN - Clean up resources
    # ==========================================================================
    logger.info("SHUTDOWN: Cleaning up resources...")

    try:
        await orchestrator.close()
        logger.info("Orchestrator closed")
    except Exception as e:
        logger.error(f"Error closing orchestrator: {e}")

    try:
        await store.aclose()
        logger.info("Model store closed")
    except Exception as e:
        logger.error(f"Error closing model store: {e}")

    logger.info("Shutdown complete")


# Create the FastAPI application with lifespan
app = create_app(lifespan=lifespan)


def main():
    """Main entry point - starts the uvicorn server"""
    config = validate_config(load_config())

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        format_type=config.logging.format
    )

    logger.info("Starting Funcaptcha Solver")
    logger.info(f"Server: {config.server.host}:{config.server.port}")
    logger.info(f"Submit limit: {config.solver.limit}")
    logger.info(f"ONNX: threads={config.onnx.num_threads} allocator={config.onnx.allocator}")

    uvicorn.run(
        "main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
        workers=1,  # Single worker - see note above
        log_level="info" if not config.server.debug else "debug",
        access_log=True,
    )


if __name__ == "__main__":
    main()
