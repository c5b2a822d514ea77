"""
Redis wire backend built on redis.asyncio.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import unquote, urlsplit

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ....core.domain.connection import ConnectionParams
from ....core.interfaces.adapters import IConnectionBackend
from .retry import ReconnectPolicy

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379
DEFAULT_USER = "default"
URL_SCHEMES = ("redis", "rediss")
UNAUTHORIZED_SSL = "unauthorized"

SUPPORTED_COMMANDS = frozenset({
    # keys
    "DEL", "EXISTS", "EXPIRE", "PEXPIRE", "EXPIREAT", "PERSIST", "TTL", "PTTL",
    "KEYS", "SCAN", "TYPE", "RENAME", "UNLINK",
    # strings
    "GET", "SET", "SETEX", "SETNX", "GETSET", "GETDEL", "MGET", "MSET",
    "APPEND", "STRLEN", "INCR", "INCRBY", "INCRBYFLOAT", "DECR", "DECRBY",
    # hashes
    "HGET", "HSET", "HDEL", "HEXISTS", "HGETALL", "HKEYS", "HVALS", "HLEN",
    "HMGET", "HINCRBY",
    # lists
    "LPUSH", "RPUSH", "LPOP", "RPOP", "LRANGE", "LLEN", "LINDEX", "LREM", "LTRIM",
    # sets
    "SADD", "SREM", "SMEMBERS", "SISMEMBER", "SCARD",
    # sorted sets
    "ZADD", "ZREM", "ZRANGE", "ZRANGEBYSCORE", "ZSCORE", "ZCARD", "ZINCRBY",
    # server
    "PING", "ECHO", "DBSIZE", "FLUSHDB",
})


def decode_response(value: Any) -> Any:
    """Decode every bytes value in a reply to str."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, list):
        return [decode_response(v) for v in value]
    if isinstance(value, tuple):
        return tuple(decode_response(v) for v in value)
    if isinstance(value, set):
        return {decode_response(v) for v in value}
    if isinstance(value, dict):
        return {decode_response(k): decode_response(v) for k, v in value.items()}
    return value


@dataclass
class RedisConnection:
    """A redis client together with its reconnect policy."""
    client: Any
    policy: ReconnectPolicy
    label: str = ""


class RedisBackend(IConnectionBackend):
    """
    Speaks to redis through ``redis.asyncio.Redis``.

    ``client_factory`` builds the client from keyword arguments and defaults
    to ``redis.asyncio.Redis``.
    """

    name = "redis"

    def __init__(self, client_factory: Optional[Callable[..., Any]] = None) -> None:
        self._client_factory = client_factory or aioredis.Redis

    def default_settings(self) -> Dict[str, Any]:
        return {
            "host": DEFAULT_HOST,
            "port": DEFAULT_PORT,
            "user": DEFAULT_USER,
            "password": "",
            "database": "",
            "ssl": False,
        }

    def parse_url(self, url: str) -> Dict[str, Any]:
        """
        Split ``redis://[user[:password]@]host[:port][/db]``.

        Raises:
            ValueError: If the url is not a redis url.
        """
        parts = urlsplit(url)
        if parts.scheme not in URL_SCHEMES:
            raise ValueError(f'invalid redis url "{url}": scheme must be one of {", ".join(URL_SCHEMES)}')

        database = parts.path.lstrip("/")
        if database and not database.isdigit():
            raise ValueError(f'invalid redis url "{url}": database must be a number')

        return {
            "host": parts.hostname or "",
            "port": parts.port,
            "user": unquote(parts.username) if parts.username else "",
            "password": unquote(parts.password) if parts.password else "",
            "database": database,
            "ssl": parts.scheme == "rediss",
        }

    def create_connection(self, params: ConnectionParams, timeout: float, label: str) -> RedisConnection:
        policy = ReconnectPolicy(label)
        kwargs: Dict[str, Any] = {
            "host": params.host,
            "port": params.port,
            "db": int(params.database) if params.database else 0,
            "password": params.password or None,
            "socket_connect_timeout": timeout,
            "retry": policy,
            "retry_on_error": [RedisConnectionError, RedisTimeoutError],
            "decode_responses": False,
        }
        if params.password and params.user:
            kwargs["username"] = params.user
        if params.ssl:
            kwargs["ssl"] = True
            if params.ssl == UNAUTHORIZED_SSL:
                kwargs["ssl_cert_reqs"] = "none"

        return RedisConnection(client=self._client_factory(**kwargs), policy=policy, label=label)

    async def open_connection(self, connection: RedisConnection) -> None:
        await connection.client.ping()
        connection.policy.arm()
        logger.debug(f'Redis connection for store "{connection.label}" is up, reconnects enabled')

    async def close_connection(self, connection: RedisConnection) -> None:
        connection.policy.disarm()
        await connection.client.aclose()

    def supports(self, command: str) -> bool:
        return isinstance(command, str) and command.upper() in SUPPORTED_COMMANDS

    async def invoke(self, connection: RedisConnection, command: str, *args: Any, binary: bool = False) -> Any:
        result = await connection.client.execute_command(command.upper(), *args)
        return result if binary else decode_response(result)

    def is_ack(self, result: Any) -> bool:
        return result is True or result in ("OK", b"OK")
