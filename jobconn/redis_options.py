"""
Redis connection options for the job queue.

Two profiles exist:
  - LOCAL  (APP_ENV=development): external endpoint from REDIS_URL_PUBLIC,
    TLS when the URL scheme is rediss://
  - REMOTE (anything else): internal endpoint from REDIS_URL_PRIVATE,
    dual-stack address lookup, never TLS

Both profiles disable the per-command retry cap so the queue client keeps
retrying through transient connection failures.
"""
import os
import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit, unquote

logger = logging.getLogger("jobconn")

# Deployment mode indicator (APP_ENV wins, NODE_ENV kept for mixed deployments)
MODE_KEYS = ("APP_ENV", "NODE_ENV")
LOCAL_MODE_VALUE = "development"

REDIS_URL_PUBLIC = "REDIS_URL_PUBLIC"
REDIS_URL_PRIVATE = "REDIS_URL_PRIVATE"

DEFAULT_REDIS_PORT = 6379
TLS_SCHEME = "rediss"

# scheme:// then everything up to the LAST "@"
_USERINFO_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*://).*@", re.DOTALL)

# Anything with a dict-like .get(); os.environ qualifies.
ConnectionSource = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ConfigurationError(RuntimeError):
    """Fatal Redis configuration problem. Startup should abort."""


class MissingConfigurationError(ConfigurationError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{key} is not defined in environment variables.")


class InvalidUrlError(ConfigurationError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid Redis URL {url!r}: {reason}")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class DeploymentMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"

    @classmethod
    def from_env(cls, value: Optional[str]) -> "DeploymentMode":
        """Only the exact string "development" selects LOCAL."""
        return cls.LOCAL if value == LOCAL_MODE_VALUE else cls.REMOTE

    @property
    def url_key(self) -> str:
        return REDIS_URL_PUBLIC if self is DeploymentMode.LOCAL else REDIS_URL_PRIVATE


class AddressFamily(str, Enum):
    # Resolve both IPv6 and IPv4 addresses
    DUAL_STACK = "dual-stack"


@dataclass(frozen=True)
class TlsOptions:
    server_name: str


@dataclass(frozen=True)
class ParsedEndpoint:
    scheme: str
    hostname: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class ConnectionOptions:
    host: str
    port: int
    mode: DeploymentMode
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    tls: Optional[TlsOptions] = None
    family: Optional[AddressFamily] = None
    # None = no cap on retries per command
    max_retries_per_request: Optional[int] = None

    @property
    def unlimited_retries(self) -> bool:
        return self.max_retries_per_request is None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _redact(url: str) -> str:
    """
    Hide the userinfo part of a URL so it can be logged or raised safely.

    Everything up to the last "@" is masked: passwords may contain "/", "?"
    or "@" unescaped, so the netloc boundaries cannot be trusted here.
    """
    return _USERINFO_RE.sub(r"\1***@", url)


def read_mode(source: ConnectionSource) -> DeploymentMode:
    # Empty values count as unset (compose files render APP_ENV=${APP_ENV} as "")
    for key in MODE_KEYS:
        value = source.get(key)
        if value:
            return DeploymentMode.from_env(value)
    return DeploymentMode.REMOTE


def parse_endpoint(url: str) -> ParsedEndpoint:
    """
    Parse a redis:// or rediss:// URL.

    Raises InvalidUrlError when the string has no scheme or an invalid port.
    Missing port falls back to 6379; an empty hostname is accepted as-is.
    """
    # Parser messages can echo parts of the password, so reasons are fixed strings
    try:
        parts = urlsplit(url.strip())
    except ValueError as e:
        raise InvalidUrlError(_redact(url), "malformed URL") from e

    try:
        port = parts.port
    except ValueError as e:
        raise InvalidUrlError(_redact(url), "invalid port") from e

    if not parts.scheme:
        raise InvalidUrlError(_redact(url), "missing URL scheme")

    return ParsedEndpoint(
        scheme=parts.scheme.lower(),
        hostname=parts.hostname or "",
        # No port in the URL: use the Redis default rather than 0
        port=port if port is not None else DEFAULT_REDIS_PORT,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def resolve_connection_options(source: Optional[ConnectionSource] = None) -> ConnectionOptions:
    """
    Build ConnectionOptions for the current deployment mode.

    `source` defaults to the process environment. Errors are never recovered
    here: a missing key or a bad URL propagates to the caller.
    """
    if source is None:
        source = os.environ

    mode = read_mode(source)
    key = mode.url_key

    raw = source.get(key)
    if not raw:
        raise MissingConfigurationError(key)

    endpoint = parse_endpoint(raw)

    if mode is DeploymentMode.LOCAL:
        tls = TlsOptions(server_name=endpoint.hostname) if endpoint.scheme == TLS_SCHEME else None
        options = ConnectionOptions(
            host=endpoint.hostname,
            port=endpoint.port,
            mode=mode,
            username=endpoint.username,
            password=endpoint.password,
            tls=tls,
        )
        logger.info(
            "Using EXTERNAL Redis connection (Host: %s, Port: %s, TLS: %s)",
            options.host,
            options.port,
            options.tls is not None,
        )
        return options

    # Private network: no TLS regardless of scheme
    options = ConnectionOptions(
        host=endpoint.hostname,
        port=endpoint.port,
        mode=mode,
        username=endpoint.username,
        password=endpoint.password,
        family=AddressFamily.DUAL_STACK,
    )
    logger.info(
        "Using INTERNAL Redis connection (Host: %s, Port: %s)",
        options.host,
        options.port,
    )
    return options
