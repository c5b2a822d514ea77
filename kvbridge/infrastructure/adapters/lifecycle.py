"""
Connection lifecycle shared by store adapters.

Drives one connection through DISCONNECTED -> CONNECTING -> CONNECTED,
opening an SSH tunnel first when the store is configured with one.
"""

import asyncio
import logging
from typing import Any, Optional

from ...core.domain.connection import ConnectionSettings
from ...core.exceptions import ConnectError
from ...core.interfaces.adapters import ConnectionState, IConnectionBackend
from ..config.settings import DEFAULT_CONNECT_TIMEOUT
from ..services.ssh.forwarder import TunnelHandle, TunnelManager

logger = logging.getLogger(__name__)

# The whole connect attempt, tunnel included, may take this many connect timeouts
WATCHDOG_FACTOR = 2


class ConnectionLifecycle:
    """
    Owns the connection handle and tunnel of one adapter instance.

    Only the initial connection attempt is fatal. Once connected, the
    backend may reconnect in the background on its own; those attempts are
    logged by the backend and never surface here.
    """

    def __init__(
        self,
        name: str,
        settings: ConnectionSettings,
        backend: IConnectionBackend,
        tunnel_manager: Optional[TunnelManager] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    ) -> None:
        self._name = name
        self._settings = settings
        self._backend = backend
        self._tunnel_manager = tunnel_manager
        self._connect_timeout = connect_timeout

        self._state = ConnectionState.DISCONNECTED
        self._connection: Optional[Any] = None
        self._tunnel: Optional[TunnelHandle] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> ConnectionSettings:
        return self._settings

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connection(self) -> Optional[Any]:
        return self._connection

    @property
    def tunnel(self) -> Optional[TunnelHandle]:
        return self._tunnel

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._connection is not None

    def describe(self) -> str:
        settings = self._settings
        target = f"{self._backend.name}"
        if settings.database:
            target += f' database "{settings.database}"'
        return f'{target} as role "{settings.user}" on {settings.host}:{settings.port}'

    async def connect(self, timeout: Optional[float] = None) -> bool:
        """
        Connect, tearing everything down again if the attempt fails.

        Args:
            timeout: Connect timeout in seconds; the whole attempt is
                bounded by twice this value

        Raises:
            ConnectError: If the tunnel or connection cannot be established
                in time.
        """
        if self._state == ConnectionState.CONNECTED:
            return True
        if self._state == ConnectionState.CONNECTING:
            raise ConnectError(f'Store "{self._name}" is already connecting')

        timeout = timeout or self._connect_timeout
        watchdog = timeout * WATCHDOG_FACTOR
        self._update_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting to {self.describe()} ...")

        try:
            await asyncio.wait_for(self._establish(timeout), timeout=watchdog)
        except asyncio.TimeoutError as e:
            await self._teardown()
            raise ConnectError(
                f'Could not connect to store "{self._name}" ({self.describe()}): '
                f"timed out after {watchdog:g}s",
                details={"store": self._name, "timeout": watchdog}
            ) from e
        except Exception as e:
            await self._teardown()
            raise ConnectError(
                f'Could not connect to store "{self._name}" ({self.describe()}): {e}',
                details={"store": self._name}
            ) from e
        except asyncio.CancelledError:
            await self._teardown()
            raise

        self._update_state(ConnectionState.CONNECTED)
        logger.info(f'Successfully connected to store "{self._name}"')
        return True

    async def close(self) -> None:
        """Disconnect and release the tunnel. Never raises."""
        await self._teardown()
        logger.info(f'Closed store "{self._name}"')

    async def _establish(self, timeout: float) -> None:
        params = self._settings.to_params()

        tunnel = self._settings.tunnel
        if tunnel is not None:
            if self._tunnel_manager is None:
                self._tunnel_manager = TunnelManager()
            self._tunnel = await self._tunnel_manager.open(
                params.host,
                params.port,
                tunnel.private_key,
                tunnel.user,
                tunnel.host,
                tunnel.port
            )
            params = params.via_local_port(self._tunnel.local_port)

        self._connection = self._backend.create_connection(params, timeout, self._name)
        await self._backend.open_connection(self._connection)

    async def _teardown(self) -> None:
        connection, self._connection = self._connection, None
        tunnel, self._tunnel = self._tunnel, None

        if connection is not None:
            try:
                await self._backend.close_connection(connection)
            except Exception as e:
                logger.debug(f'Ignoring error while closing store "{self._name}": {e}')

        if tunnel is not None:
            try:
                await tunnel.close()
            except Exception as e:
                logger.debug(f'Ignoring error while closing tunnel of store "{self._name}": {e}')

        self._update_state(ConnectionState.DISCONNECTED)

    def _update_state(self, state: ConnectionState) -> None:
        old_state = self._state
        self._state = state
        if old_state != state:
            logger.debug(f"Store {self._name} state changed: {old_state.value} -> {state.value}")
