"""
ARQ Worker for background task processing.

This worker handles:
- reschedule_project: Recalculates every task of a project in dependency
  order, e.g. after a bulk import

Usage:
    arq ripple.worker.WorkerSettings
"""

import uuid

from arq import create_pool
from arq.connections import RedisSettings, ArqRedis

from ripple.config import get_settings
from ripple.database import get_session_context
from ripple.exceptions import StaleSnapshotError
from ripple.services.recalc import reschedule_all
from ripple.services.store import apply_batch, load_snapshot
from ripple.logging_config import setup_logging, get_logger

# Initialize logging for the worker
setup_logging()
logger = get_logger(__name__)

settings = get_settings()


def parse_redis_url(url: str) -> RedisSettings:
    """Parse redis URL into RedisSettings."""
    # redis://localhost:6380/0 -> host=localhost, port=6380, database=0
    url = url.replace("redis://", "")
    database = 0
    if "/" in url:
        url, _, db = url.partition("/")
        database = int(db or 0)
    if ":" in url:
        host, port = url.split(":")
        return RedisSettings(host=host, port=int(port), database=database)
    return RedisSettings(host=url, database=database)


async def reschedule_project(ctx: dict, project_id: str) -> str:
    """
    Recalculate all dates of a project and write them in one transaction.

    If another writer changed a task in the meantime the whole batch is
    rolled back; the job reports it and the next edit reschedules anyway.
    """
    logger.info(f"Rescheduling project={project_id}")
    try:
        async with get_session_context(ctx.get("session_maker")) as session:
            loaded = await load_snapshot(session, uuid.UUID(project_id))
            batch = reschedule_all(loaded.snapshot)
            await apply_batch(session, loaded, batch)
    except StaleSnapshotError as exc:
        logger.warning(f"Reschedule of project={project_id} skipped: {exc.message}")
        return f"Skipped: {exc.message}"

    logger.info(f"Rescheduled project={project_id}: {len(batch)} tasks updated")
    return f"Updated {len(batch)} tasks"


async def startup(ctx: dict) -> None:
    """Worker startup."""
    logger.info("ARQ Worker starting up...")
    logger.info(f"Redis: {settings.redis_url}")


async def shutdown(ctx: dict) -> None:
    """Worker shutdown - cleanup."""
    logger.info("ARQ Worker shutting down...")


class WorkerSettings:
    """ARQ Worker configuration."""

    functions = [reschedule_project]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = parse_redis_url(settings.redis_url)
    max_jobs = 10
    job_timeout = 300  # 5 minutes max per job


# Redis pool for enqueuing jobs from the API
_arq_pool: ArqRedis | None = None


async def get_arq_pool() -> ArqRedis:
    """Get or create the ARQ Redis pool for enqueuing jobs."""
    global _arq_pool
    if _arq_pool is None:
        logger.debug("Creating ARQ Redis pool")
        _arq_pool = await create_pool(parse_redis_url(settings.redis_url))
    return _arq_pool


async def enqueue_reschedule(project_id: str) -> None:
    """Enqueue a full reschedule of a project."""
    pool = await get_arq_pool()
    logger.debug(f"Enqueuing reschedule job: project={project_id[:8]}...")
    await pool.enqueue_job("reschedule_project", project_id)
