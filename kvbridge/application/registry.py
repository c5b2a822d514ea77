"""
Named store registry.

The registry binds store names to connected adapters. The store named
``main`` is the default one, used by ``connect`` and ``store()``.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Type, Union

from pydantic import BaseModel

from ..core.exceptions import ConfigInvalid, DuplicateStore, StoreNotConnected
from ..core.interfaces.adapters import IKVAdapter
from ..infrastructure.adapters.redis import RedisAdapter
from ..infrastructure.config.manager import ConfigManager
from ..infrastructure.config.models import StoreConfig, validate_store_config
from ..infrastructure.config.settings import KVSettings
from ..infrastructure.services.ssh.forwarder import TunnelManager
from ..infrastructure.services.ssh.ports import PortRegistry

logger = logging.getLogger(__name__)

MAIN_STORE = "main"

StoreConfigInput = Union[StoreConfig, Mapping[str, Any], str, None]


class StoreRegistry:
    """
    Connects and tracks named stores.

    Args:
        config_manager: Source of persisted store configs
        settings: Runtime settings (timeouts, tunnel ports)
        tunnel_manager: Tunnel manager shared by every store
        adapter_options: Extra keyword arguments passed to every adapter
    """

    available_adapters: Dict[str, Type[IKVAdapter]] = {"redis": RedisAdapter}
    default_adapter = "redis"

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        settings: Optional[KVSettings] = None,
        tunnel_manager: Optional[TunnelManager] = None,
        adapter_options: Optional[Dict[str, Any]] = None
    ) -> None:
        self._settings = settings or KVSettings.from_environment()
        self._config = config_manager or ConfigManager(
            root=self._settings.config_root,
            runtime_env=self._settings.environment
        )
        self._tunnel_manager = tunnel_manager or TunnelManager(
            ports=PortRegistry(self._settings.tunnel_base_port),
            max_retries=self._settings.tunnel_retries
        )
        self._adapter_options = dict(adapter_options or {})

        self._stores: Dict[str, IKVAdapter] = {}
        self._pending: Set[str] = set()

    @property
    def config(self) -> ConfigManager:
        return self._config

    @property
    def settings(self) -> KVSettings:
        return self._settings

    @property
    def names(self) -> List[str]:
        return list(self._stores)

    def __contains__(self, name: object) -> bool:
        return name in self._stores

    @classmethod
    def register_adapter(cls, name: str, adapter_class: Type[IKVAdapter]) -> None:
        """Make an adapter implementation available under ``name``."""
        # Copied so registering on a subclass leaves the parent untouched
        cls.available_adapters = {**cls.available_adapters, name: adapter_class}
        logger.debug(f"Registered adapter: {name}")

    @classmethod
    def get_adapter(cls, name: Optional[str] = None) -> Type[IKVAdapter]:
        name = name or cls.default_adapter
        try:
            return cls.available_adapters[name]
        except KeyError:
            available = ", ".join(sorted(cls.available_adapters))
            raise ConfigInvalid(f'unknown adapter "{name}", available adapters: {available}', path=["adapter"])

    def store(self, name: str = MAIN_STORE) -> IKVAdapter:
        try:
            return self._stores[name]
        except KeyError:
            raise StoreNotConnected(f'Store "{name}" is not connected')

    async def connect(self, cfg: StoreConfigInput = None) -> IKVAdapter:
        """Connect the main store."""
        return await self.add_store(MAIN_STORE, cfg)

    async def add_store(
        self,
        name: str,
        cfg: StoreConfigInput = None,
        adapter: Optional[Union[str, Type[IKVAdapter]]] = None
    ) -> IKVAdapter:
        """
        Connect a store and bind it under ``name``.

        Args:
            name: Store name
            cfg: Store config, raw mapping or connection string; read from
                the config file for the runtime environment when omitted
            adapter: Adapter name or class (defaults to ``default_adapter``)

        Raises:
            DuplicateStore: If ``name`` is bound or being bound.
            ConfigError: If the config cannot be resolved.
            ConnectError: If the connection attempt fails.
        """
        if name in self._stores or name in self._pending:
            raise DuplicateStore(f'Store "{name}" is already connected')

        self._pending.add(name)
        try:
            adapter_class = adapter if isinstance(adapter, type) else self.get_adapter(adapter)
            config = await self._resolve_config(name, cfg)
            instance = adapter_class(
                name,
                config,
                tunnel_manager=self._tunnel_manager,
                connect_timeout=self._settings.connect_timeout,
                command_timeout=self._settings.command_timeout,
                **self._adapter_options
            )
            await instance.connect()
            self._stores[name] = instance
        finally:
            self._pending.discard(name)

        logger.info(f'Added store "{name}"')
        return instance

    async def remove_store(self, name: str) -> None:
        """Close and unbind one store."""
        instance = self.store(name)
        del self._stores[name]
        await instance.close()
        logger.info(f'Removed store "{name}"')

    async def disconnect_all(self) -> None:
        """Close every store, the main store last. Never raises."""
        order = [n for n in self._stores if n != MAIN_STORE]
        if MAIN_STORE in self._stores:
            order.append(MAIN_STORE)

        for name in order:
            try:
                await self._stores[name].close()
            except Exception as e:
                logger.error(f'Error closing store "{name}": {e}')

        self._stores.clear()
        logger.info("Disconnected all stores")

    async def _resolve_config(self, name: str, cfg: StoreConfigInput) -> StoreConfig:
        if cfg is None:
            return await self._config.read(self._config.runtime_env, name)
        if isinstance(cfg, BaseModel):
            return cfg
        if isinstance(cfg, str):
            cfg = {"connectionString": cfg}
        return validate_store_config(cfg)
