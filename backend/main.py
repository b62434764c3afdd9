"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import config
from routes.jobs import router as jobs_router
from services.job_manager import JobManager
from services.mulmo_cli import check_mulmo
from services.pipeline import ContentPipeline
from workers.runner import JobRunner
from workers.sweeper import JobSweeper

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("mca")


def create_app(pipeline: Optional[ContentPipeline] = None) -> FastAPI:
    """Build the application with its own job registry, runner and sweeper."""
    job_manager = JobManager()
    job_runner = JobRunner(job_manager, pipeline or ContentPipeline(), shutdown_timeout=config.SHUTDOWN_TIMEOUT)
    sweeper = JobSweeper(job_manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        logger.info("Job sweeper started.")
        yield
        sweeper.stop()
        await job_runner.shutdown()
        logger.info("Job sweeper stopped.")

    app = FastAPI(
        title="Mulmocast Automation",
        description="Generate MulmoScript audio, images and video from a web page",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Shared state exposed via app.state
    app.state.job_manager = job_manager
    app.state.job_runner = job_runner

    app.include_router(jobs_router, prefix="/api", tags=["jobs"])
    app.mount("/output", StaticFiles(directory=str(config.OUTPUT_DIR), check_dir=False), name="output")

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "jobs": len(job_manager), "mulmo": check_mulmo()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
