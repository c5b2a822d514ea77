"""
SSH transport interfaces.

The tunnel manager only needs a transport that can open a local port
forward through an SSH host and hand back a closable session.
"""

from abc import ABC, abstractmethod
from typing import Optional


class ISSHSession(ABC):
    """A live local port forwarding session."""

    @abstractmethod
    async def close(self) -> None:
        """Stop forwarding and close the SSH connection."""
        pass


class ISSHTransport(ABC):
    """Opens local port forwards through an SSH intermediary."""

    @abstractmethod
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
        """
        Forward ``localhost:local_port`` to ``remote_host:remote_port``.

        Raises:
            OSError: If the local port cannot be bound (errno EADDRINUSE)
                or the SSH host cannot be reached.
        """
        pass
