# worker/main.py
"""
Background worker: polls the job queue and drains pending jobs in batches.
"""
from __future__ import annotations

import asyncio
import logging
import platform
import uuid

from api.app.config import get_settings
from db.engine import dispose_engine
from jobs.factory import build_job_processor

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("worker")


WORKER_ID = f"worker-{platform.node()}-{uuid.uuid4().hex[:8]}"

# finished jobs are purged roughly this often
CLEANUP_EVERY_SECONDS = 3600


async def run_loop() -> None:
    settings = get_settings()
    processor = build_job_processor(settings, worker_id=WORKER_ID)
    logger.info(
        "Worker %s starting (poll=%.1fs, batch=%d)",
        WORKER_ID,
        settings.worker_poll_interval,
        settings.worker_batch_size,
    )

    loop = asyncio.get_running_loop()
    next_cleanup = loop.time()

    while True:
        try:
            processed = await processor.process_pending_jobs(settings.worker_batch_size)
            if processed:
                logger.info("Processed %d job(s)", processed)

            if loop.time() >= next_cleanup:
                await processor.queue.cleanup_old_jobs()
                next_cleanup = loop.time() + CLEANUP_EVERY_SECONDS

        except Exception as exc:
            logger.exception("Worker loop error: %s", exc)

        await asyncio.sleep(settings.worker_poll_interval)


async def _run() -> None:
    try:
        await run_loop()
    finally:
        await dispose_engine()


def main() -> None:
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Worker %s stopped", WORKER_ID)


if __name__ == "__main__":
    main()
