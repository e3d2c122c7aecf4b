# tests/test_queue.py
from redis import Redis

from jobconn.queue import JOB_TIMEOUT_SECONDS, QUEUE_NAME, get_queue


def test_get_queue_with_explicit_connection():
    conn = Redis(host="localhost", port=6379)
    q = get_queue("emails", connection=conn)

    assert q.name == "emails"
    assert q.connection is conn
    assert q._default_timeout == JOB_TIMEOUT_SECONDS


def test_get_queue_resolves_connection_from_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("REDIS_URL_PUBLIC", "redis://public-host:6390")

    q = get_queue()

    assert q.name == QUEUE_NAME
    kwargs = q.connection.connection_pool.connection_kwargs
    assert kwargs["host"] == "public-host"
    assert kwargs["port"] == 6390
