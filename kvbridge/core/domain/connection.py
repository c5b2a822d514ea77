"""
Connection domain models.

These are the resolved, backend-facing forms of a store configuration:
templates are already interpolated, connection strings already parsed and
private keys already loaded.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

SSLMode = Union[bool, str]

LOCAL_HOST = "localhost"


@dataclass(frozen=True)
class ConnectionParams:
    """Parameters handed to a backend to open a connection."""
    host: str
    port: int
    user: str = ""
    password: str = ""
    database: str = ""
    ssl: SSLMode = False

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    def via_local_port(self, port: int) -> "ConnectionParams":
        """Target a locally forwarded endpoint instead of the remote host."""
        return replace(self, host=LOCAL_HOST, port=port, ssl=False)


@dataclass(frozen=True)
class TunnelSettings:
    """Resolved SSH tunnel settings."""
    user: str
    host: str
    port: int = 22
    private_key: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"


@dataclass(frozen=True)
class ConnectionSettings:
    """Resolved settings for one store."""
    host: str
    port: int
    user: str = ""
    password: str = ""
    database: str = ""
    ssl: SSLMode = False
    in_vpc: bool = False
    tunnel: Optional[TunnelSettings] = None

    def to_params(self) -> ConnectionParams:
        return ConnectionParams(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            ssl=self.ssl
        )
