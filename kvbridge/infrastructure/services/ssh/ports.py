"""
Local port tracking for SSH tunnels.
"""

from typing import FrozenSet, Optional, Set

MAX_PORT = 65535


class PortRegistry:
    """
    Tracks local ports held by open (or opening) tunnels.

    Reservation is synchronous, so two tunnels opened concurrently on the
    same event loop can never be handed the same port. One registry is
    normally shared process-wide through the TunnelManager that owns it;
    tests create their own.
    """

    def __init__(self, base_port: int = 9736) -> None:
        self._base_port = base_port
        self._ports: Set[int] = set()

    @property
    def base_port(self) -> int:
        return self._base_port

    @property
    def in_use(self) -> FrozenSet[int]:
        return frozenset(self._ports)

    def __contains__(self, port: object) -> bool:
        return port in self._ports

    def __len__(self) -> int:
        return len(self._ports)

    def reserve(self, start: Optional[int] = None) -> int:
        """
        Reserve the first untracked port at or above ``start``.

        Raises:
            OverflowError: If no port is left below 65536.
        """
        port = self._base_port if start is None else start
        while port in self._ports:
            port += 1
        if port > MAX_PORT:
            raise OverflowError(f"No local port available above {start or self._base_port}")
        self._ports.add(port)
        return port

    def release(self, port: int) -> bool:
        """Stop tracking ``port``. Returns False if it was not tracked."""
        if port not in self._ports:
            return False
        self._ports.discard(port)
        return True
