"""
Worker entry point.
Run with: python -m docextract.worker.runner
"""

import structlog
from redis import Redis
from rq import Worker

from docextract.config import settings
from docextract.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def main():
    """Start the RQ worker on the extraction queue."""
    setup_logging()

    conn = Redis.from_url(settings.REDIS_URL)
    worker = Worker(
        queues=[settings.QUEUE_NAME],
        connection=conn,
        name=f"docextract-worker-{settings.APP_VERSION}",
    )

    logger.info("worker_starting", queue=settings.QUEUE_NAME, engine_version=settings.ENGINE_VERSION)
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
