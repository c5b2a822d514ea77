"""
SSH tunnel management.

This module opens local port forwards through an SSH host so that a store
which is only reachable from inside a private network can be addressed as
``localhost:<port>``.
"""

import asyncio
import errno
import logging
from typing import Any, Dict, Optional, Union

import asyncssh

from ....core.domain.connection import LOCAL_HOST
from ....core.exceptions import TunnelError, TunnelExhausted
from ....core.interfaces.ssh import ISSHSession, ISSHTransport
from .ports import PortRegistry

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22
DEFAULT_MAX_RETRIES = 100


def is_address_in_use(error: BaseException) -> bool:
    """Check whether a transport failure means the local port is taken."""
    if isinstance(error, OSError) and error.errno == errno.EADDRINUSE:
        return True
    text = str(error).lower()
    return "eaddrinuse" in text or "address already in use" in text


class AsyncSSHSession(ISSHSession):
    """Local port forward backed by an asyncssh connection."""

    def __init__(self, connection: Any, listener: Any) -> None:
        self._connection = connection
        self._listener = listener

    async def close(self) -> None:
        self._listener.close()
        self._connection.close()
        await self._connection.wait_closed()


class AsyncSSHTransport(ISSHTransport):
    """
    SSH transport built on asyncssh.

    Host keys are not verified unless ``known_hosts`` is given.
    """

    def __init__(
        self,
        known_hosts: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        keepalive_interval: int = 60
    ) -> None:
        self._known_hosts = known_hosts
        self._connect_timeout = connect_timeout
        self._keepalive_interval = keepalive_interval

    async def open(
        self,
        local_port: int,
        remote_host: str,
        remote_port: int,
        ssh_user: str,
        ssh_host: str,
        ssh_port: int,
        private_key: Optional[str]
    ) -> ISSHSession:
        connect_kwargs: Dict[str, Any] = {
            'host': ssh_host,
            'port': ssh_port,
            'username': ssh_user,
            'known_hosts': self._known_hosts,
            'keepalive_interval': self._keepalive_interval,
        }
        if self._connect_timeout:
            connect_kwargs['connect_timeout'] = self._connect_timeout
        if private_key:
            connect_kwargs['client_keys'] = [asyncssh.import_private_key(private_key)]

        connection = await asyncssh.connect(**connect_kwargs)
        try:
            listener = await connection.forward_local_port(
                LOCAL_HOST, local_port, remote_host, remote_port
            )
        except BaseException:
            connection.close()
            await connection.wait_closed()
            raise

        return AsyncSSHSession(connection, listener)


class TunnelHandle:
    """
    An open tunnel.

    Owned by whoever opened it; ``close`` releases the local port and the
    SSH session and may be called any number of times.
    """

    def __init__(self, local_port: int, session: ISSHSession, ports: PortRegistry, target: str = "") -> None:
        self._local_port = local_port
        self._session = session
        self._ports = ports
        self._target = target
        self._closed = False

    @property
    def local_port(self) -> int:
        return self._local_port

    @property
    def session(self) -> ISSHSession:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._ports.release(self._local_port)
        await self._session.close()
        logger.info(f'Closed SSH tunnel from "{LOCAL_HOST}:{self._local_port}" to "{self._target}"')


class TunnelManager:
    """
    Opens SSH tunnels on free local ports.

    Candidate ports start at the registry's base port. When the transport
    reports that a port is already bound, the next untracked port is tried,
    up to ``max_retries`` attempts in total.
    """

    def __init__(
        self,
        transport: Optional[ISSHTransport] = None,
        ports: Optional[PortRegistry] = None,
        max_retries: int = DEFAULT_MAX_RETRIES
    ) -> None:
        self._transport = transport or AsyncSSHTransport()
        self._ports = ports if ports is not None else PortRegistry()
        self._max_retries = max_retries

    @property
    def ports(self) -> PortRegistry:
        return self._ports

    async def open(
        self,
        remote_host: str,
        remote_port: Union[int, str],
        private_key: Optional[str],
        ssh_user: str,
        ssh_host: str,
        ssh_port: Optional[int] = DEFAULT_SSH_PORT
    ) -> TunnelHandle:
        """
        Open a tunnel from a free local port to ``remote_host:remote_port``.

        Raises:
            TunnelExhausted: If no local port could be bound within the retry budget.
            TunnelError: On any other transport failure.
        """
        ssh_port = ssh_port or DEFAULT_SSH_PORT
        remote_port = int(remote_port)
        target = f"{remote_host}:{remote_port}"
        via = f"{ssh_user}@{ssh_host}:{ssh_port}"

        logger.info("Attempting to create SSH tunnel ...")
        logger.info(f'From: "{LOCAL_HOST}"')
        logger.info(f'Via:  "{via}"')
        logger.info(f'To:   "{target}"')

        local_port = self._reserve()
        retries = self._max_retries

        while True:
            try:
                session = await self._transport.open(
                    local_port, remote_host, remote_port,
                    ssh_user, ssh_host, ssh_port, private_key
                )
                break
            except asyncio.CancelledError:
                self._ports.release(local_port)
                raise
            except Exception as e:
                self._ports.release(local_port)
                if not is_address_in_use(e):
                    raise TunnelError(
                        f'Could not create SSH tunnel to "{target}" via "{via}": {e}',
                        details={"local_port": local_port, "target": target, "via": via}
                    ) from e

                retries -= 1
                if retries <= 0:
                    raise TunnelExhausted(
                        f'Could not create SSH tunnel to "{target}" via "{via}": maximum retries reached',
                        details={"last_port": local_port, "retries": self._max_retries}
                    ) from e

                logger.debug(f"Local port {local_port} is in use, retrying ({retries} retries left)")
                local_port = self._reserve(local_port + 1)

        logger.info(f'Created SSH tunnel from "{LOCAL_HOST}:{local_port}" to "{target}"!')
        return TunnelHandle(local_port, session, self._ports, target)

    def _reserve(self, start: Optional[int] = None) -> int:
        try:
            return self._ports.reserve(start)
        except OverflowError as e:
            raise TunnelExhausted(f"Could not create SSH tunnel: {e}") from e
