"""
Store adapter interfaces.

IKVAdapter is the capability every backend exposes to the registry.
IConnectionBackend is the narrower seam the shared lifecycle and dispatcher
helpers drive; a backend only has to speak its own wire protocol there.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from ..domain.connection import ConnectionParams


class ConnectionState(Enum):
    """Connection state of one adapter instance."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


Keys = Union[str, bytes, Iterable[Union[str, bytes]]]
BytesLike = Union[bytes, bytearray, memoryview]


class IConnectionBackend(ABC):
    """Wire-level operations of one backend."""

    name: str = "backend"

    @abstractmethod
    def default_settings(self) -> Dict[str, Any]:
        """Defaults for host, port, user, password, database and ssl."""
        pass

    @abstractmethod
    def parse_url(self, url: str) -> Dict[str, Any]:
        """Split a connection string into discrete connection fields."""
        pass

    @abstractmethod
    def create_connection(self, params: ConnectionParams, timeout: float, label: str) -> Any:
        """
        Build a connection handle without performing any I/O.

        The handle is returned before the first suspension point so a
        lifecycle can always tear it down, even when the connect attempt
        is interrupted.
        """
        pass

    @abstractmethod
    async def open_connection(self, connection: Any) -> None:
        """Perform the initial connection attempt. Must not retry."""
        pass

    @abstractmethod
    async def close_connection(self, connection: Any) -> None:
        """Release the connection."""
        pass

    @abstractmethod
    def supports(self, command: str) -> bool:
        """Check whether a command name is a supported primitive."""
        pass

    @abstractmethod
    async def invoke(self, connection: Any, command: str, *args: Any, binary: bool = False) -> Any:
        """Execute a primitive command."""
        pass

    @abstractmethod
    def is_ack(self, result: Any) -> bool:
        """Check whether a write command was acknowledged."""
        pass


class IKVAdapter(ABC):
    """Capability interface implemented by every store adapter."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name the adapter is bound to."""
        pass

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection state."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self, timeout: Optional[float] = None) -> bool:
        """Connect to the store, through a tunnel when configured."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Disconnect and release every resource. Never raises."""
        pass

    @abstractmethod
    async def command(self, name: str, *args: Any, binary: bool = False) -> Any:
        """Execute a primitive command under the command timeout."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> Any:
        pass

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    async def clear(self, key: Keys) -> int:
        pass

    @abstractmethod
    async def set_raw(self, key: str, value: Optional[str]) -> Optional[str]:
        pass

    @abstractmethod
    async def get_raw(self, key: str, default: Optional[str] = None) -> Optional[str]:
        pass

    @abstractmethod
    async def set_buffer(self, key: str, value: Optional[BytesLike]) -> Optional[bytes]:
        pass

    @abstractmethod
    async def get_buffer(self, key: str, default: Optional[BytesLike] = None) -> Optional[bytes]:
        pass
