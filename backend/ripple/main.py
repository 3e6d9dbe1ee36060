"""
Ripple - dependency-aware task scheduling with automatic date propagation.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from ripple.database import init_db
from ripple.routes import tasks, dependencies, projects
from ripple.exceptions import register_exception_handlers
from ripple.logging_config import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("Starting Ripple API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Ripple API...")


app = FastAPI(
    title="Ripple",
    description="Dependency-aware task scheduling with automatic date propagation",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
app.include_router(dependencies.router, prefix="/dependencies", tags=["Dependencies"])


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}
