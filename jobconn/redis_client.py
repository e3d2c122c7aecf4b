import os
from typing import Any, Dict, Optional

from redis import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError
from redis.retry import Retry

from jobconn.redis_options import ConnectionOptions, ConnectionSource, resolve_connection_options

# Backoff between reconnect attempts (seconds)
RETRY_BACKOFF_BASE = float(os.getenv("REDIS_RETRY_BACKOFF_BASE", "0.1"))
RETRY_BACKOFF_CAP = float(os.getenv("REDIS_RETRY_BACKOFF_CAP", "10"))


def _retry(options: ConnectionOptions) -> Retry:
    """Negative retry count means redis-py never gives up."""
    retries = -1 if options.unlimited_retries else options.max_retries_per_request
    return Retry(ExponentialBackoff(cap=RETRY_BACKOFF_CAP, base=RETRY_BACKOFF_BASE), retries)


def redis_kwargs(options: ConnectionOptions) -> Dict[str, Any]:
    """
    Translate ConnectionOptions into redis.Redis keyword arguments.

    Dual-stack lookup needs no flag: redis-py resolves hosts with
    getaddrinfo(AF_UNSPEC), which returns both IPv6 and IPv4 addresses.
    """
    kwargs: Dict[str, Any] = {
        "host": options.host,
        "port": options.port,
        "username": options.username,
        "password": options.password,
        "retry": _retry(options),
        "retry_on_error": [ConnectionError, TimeoutError],
        # IMPORTANT: Must be raw bytes for RQ compatibility
        "decode_responses": False,
    }
    if options.tls is not None:
        # SNI and certificate checks use the host we connect to,
        # which is always the TLS server name here.
        kwargs["ssl"] = True
        kwargs["ssl_check_hostname"] = True
    return kwargs


def get_redis(source: Optional[ConnectionSource] = None) -> Redis:
    """Build a Redis client for the current profile. No socket is opened here."""
    return Redis(**redis_kwargs(resolve_connection_options(source)))
