"""
Resolution of validated store configs into connection settings.
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional

from ...core.domain.connection import ConnectionSettings, TunnelSettings
from ...core.exceptions import ConfigInvalid
from ...core.interfaces.adapters import IConnectionBackend
from ..config.models import ConnectionStringConfig, StoreConfig, TunnelConfig

PRIVATE_KEY_PATTERN = re.compile(r"^-----BEGIN (\w+ )?PRIVATE KEY-----")


def resolve_private_key(value: Optional[str]) -> Optional[str]:
    """
    Return private key material.

    ``value`` is either the key itself or a path to a file holding it.

    Raises:
        ConfigInvalid: If the key file cannot be read.
    """
    if not value:
        return None
    if PRIVATE_KEY_PATTERN.match(value.lstrip()):
        return value
    try:
        return Path(value).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigInvalid(f"could not read private key file: {e}", path=["tunnel", "private_key"]) from e


def _tunnel_settings(tunnel: TunnelConfig) -> TunnelSettings:
    return TunnelSettings(
        user=tunnel.user,
        host=tunnel.host,
        port=int(tunnel.port or 22),
        private_key=resolve_private_key(tunnel.private_key)
    )


def build_connection_settings(config: StoreConfig, backend: IConnectionBackend) -> ConnectionSettings:
    """
    Merge a store config over the backend defaults.

    A connection string is split into discrete fields by the backend; only
    the parts present in the string override the defaults.

    Raises:
        ConfigInvalid: If the connection string cannot be parsed or the
            private key cannot be loaded.
    """
    fields: Dict[str, Any] = backend.default_settings()

    if isinstance(config, ConnectionStringConfig):
        try:
            parsed = backend.parse_url(config.connection_string)
        except ValueError as e:
            raise ConfigInvalid(str(e), path=["connectionString"]) from e
        fields.update({k: v for k, v in parsed.items() if v is not None and v != ""})
    else:
        fields.update(
            host=config.host,
            port=config.port,
            password=config.password,
            database=config.database,
            ssl=config.ssl
        )
        if config.user:
            fields["user"] = config.user

    return ConnectionSettings(
        host=fields["host"],
        port=int(fields["port"]),
        user=fields.get("user", ""),
        password=fields.get("password", ""),
        database=fields.get("database", ""),
        ssl=fields.get("ssl", False),
        in_vpc=config.in_vpc,
        tunnel=_tunnel_settings(config.tunnel) if config.tunnel else None
    )
