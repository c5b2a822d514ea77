"""
Redis store adapter.
"""

from typing import Any, Callable, Optional

from ....core.interfaces.adapters import BytesLike, ConnectionState, IKVAdapter, Keys
from ...config.models import StoreConfig
from ...config.settings import DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONNECT_TIMEOUT
from ...services.ssh.forwarder import TunnelManager
from ..dispatcher import CommandDispatcher
from ..lifecycle import ConnectionLifecycle
from ..settings import build_connection_settings
from .backend import RedisBackend


class RedisAdapter(IKVAdapter):
    """
    Key-value store adapter for redis.

    Composes the shared connection lifecycle and command dispatcher over a
    RedisBackend.

    Args:
        name: Store name
        config: Validated store config
        tunnel_manager: Tunnel manager used when the config has a tunnel
        connect_timeout: Initial connect timeout in seconds
        command_timeout: Per-command timeout in seconds
        client_factory: Redis client factory, ``redis.asyncio.Redis`` by default
    """

    def __init__(
        self,
        name: str,
        config: StoreConfig,
        *,
        tunnel_manager: Optional[TunnelManager] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        client_factory: Optional[Callable[..., Any]] = None
    ) -> None:
        self._name = name
        self._config = config
        self._backend = RedisBackend(client_factory)
        self._settings = build_connection_settings(config, self._backend)
        self._lifecycle = ConnectionLifecycle(
            name,
            self._settings,
            self._backend,
            tunnel_manager=tunnel_manager,
            connect_timeout=connect_timeout
        )
        self._dispatcher = CommandDispatcher(self._lifecycle, self._backend, command_timeout)

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._lifecycle.state

    @property
    def client(self) -> Any:
        """The underlying redis client, or None while disconnected."""
        connection = self._lifecycle.connection
        return connection.client if connection is not None else None

    def is_connected(self) -> bool:
        return self._lifecycle.is_connected()

    async def connect(self, timeout: Optional[float] = None) -> bool:
        return await self._lifecycle.connect(timeout)

    async def close(self) -> None:
        await self._lifecycle.close()

    async def command(self, name: str, *args: Any, binary: bool = False) -> Any:
        return await self._dispatcher.command(name, *args, binary=binary)

    async def set(self, key: str, value: Any) -> Any:
        return await self._dispatcher.set(key, value)

    async def get(self, key: str, default: Any = None) -> Any:
        return await self._dispatcher.get(key, default)

    async def clear(self, key: Keys) -> int:
        return await self._dispatcher.clear(key)

    async def set_raw(self, key: str, value: Optional[str]) -> Optional[str]:
        return await self._dispatcher.set_raw(key, value)

    async def get_raw(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return await self._dispatcher.get_raw(key, default)

    async def set_buffer(self, key: str, value: Optional[BytesLike]) -> Optional[bytes]:
        return await self._dispatcher.set_buffer(key, value)

    async def get_buffer(self, key: str, default: Optional[BytesLike] = None) -> Optional[bytes]:
        return await self._dispatcher.get_buffer(key, default)

    def __repr__(self) -> str:
        return f"RedisAdapter(name={self._name!r}, state={self.state.value!r})"
