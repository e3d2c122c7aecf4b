import os
from typing import Optional

from redis import Redis
from rq import Queue

from jobconn.redis_client import get_redis

# Single source of truth for queue name
QUEUE_NAME = os.getenv("QUEUE_NAME", "default")
JOB_TIMEOUT_SECONDS = int(os.getenv("JOB_TIMEOUT_SECONDS", "600"))


def get_queue(name: Optional[str] = None, connection: Optional[Redis] = None) -> Queue:
    """Return an RQ queue bound to the resolved Redis connection."""
    return Queue(
        name or QUEUE_NAME,
        connection=connection if connection is not None else get_redis(),
        default_timeout=JOB_TIMEOUT_SECONDS,
    )
