import os
import logging

from redis import Redis
from rq import Worker, Queue

from jobconn.logging_config import setup_logging
from jobconn.queue import QUEUE_NAME, JOB_TIMEOUT_SECONDS
from jobconn.redis_client import redis_kwargs
from jobconn.redis_options import ConfigurationError, resolve_connection_options

logger = logging.getLogger("worker")


def queue_names() -> list[str]:
    raw = os.getenv("QUEUE_NAMES") or QUEUE_NAME
    return [x.strip() for x in raw.split(",") if x.strip()]


def main():
    setup_logging()

    # Build Redis connection; bad config must stop the worker here
    try:
        options = resolve_connection_options()
    except ConfigurationError as e:
        logger.error("Redis configuration error, aborting worker startup: %s", e)
        raise
    conn = Redis(**redis_kwargs(options))

    # Create queue(s) with explicit connection
    names = queue_names()
    queues = [Queue(n, connection=conn, default_timeout=JOB_TIMEOUT_SECONDS) for n in names]

    # Start worker with explicit connection
    w = Worker(queues, connection=conn)
    logger.info(
        "RQ worker starting (queues=%s, profile=%s, host=%s, port=%s)",
        names,
        options.mode.value,
        options.host,
        options.port,
    )
    w.work(with_scheduler=False)


if __name__ == "__main__":
    main()
