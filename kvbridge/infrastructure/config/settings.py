"""
Runtime settings loaded from environment variables.

These knobs control the client itself (timeouts, tunnel port range, where
the persisted store config lives), as opposed to the per-store credentials
managed by ConfigManager.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ...core.exceptions import ConfigInvalid

DEFAULT_ENVIRONMENT = "development"
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_COMMAND_TIMEOUT = 5.0
DEFAULT_TUNNEL_BASE_PORT = 9736
DEFAULT_TUNNEL_RETRIES = 100


@dataclass
class KVSettings:
    """Client runtime settings."""
    environment: str = DEFAULT_ENVIRONMENT
    config_root: str = "."
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    tunnel_base_port: int = DEFAULT_TUNNEL_BASE_PORT
    tunnel_retries: int = DEFAULT_TUNNEL_RETRIES
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if not self.environment:
            raise ConfigInvalid("environment must be a non-empty string", path=["environment"])
        for name in ("connect_timeout", "command_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigInvalid(f"must be positive, got {getattr(self, name)}", path=[name])
        if not 1 <= self.tunnel_base_port <= 65535:
            raise ConfigInvalid(
                f"must be between 1 - 65535, got {self.tunnel_base_port}",
                path=["tunnel_base_port"]
            )
        if self.tunnel_retries < 1:
            raise ConfigInvalid(f"must be at least 1, got {self.tunnel_retries}", path=["tunnel_retries"])

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "KVSettings":
        """
        Build settings from ``KVBRIDGE_*`` environment variables.

        Args:
            environ: Variables to read (defaults to ``os.environ``)
            **overrides: Explicit values that win over the environment

        Raises:
            ConfigInvalid: If a variable cannot be converted.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for env_var, (field_name, converter) in ENV_MAPPINGS.items():
            value = environ.get(env_var)
            if value is None or value == "":
                continue
            try:
                values[field_name] = converter(value)
            except (ValueError, TypeError) as e:
                raise ConfigInvalid(f"invalid value for {env_var}: {value} ({e})", path=[field_name])

        known = {f.name for f in fields(cls)}
        values.update({k: v for k, v in overrides.items() if k in known and v is not None})
        return cls(**values)

    def logging_config(self, **overrides: Any) -> "LoggingConfig":
        """Logging configuration at this settings' log level."""
        return LoggingConfig(level=self.log_level, **overrides)


ENV_PREFIX = "KVBRIDGE_"

ENV_MAPPINGS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    f"{ENV_PREFIX}ENV": ("environment", str),
    f"{ENV_PREFIX}CONFIG_ROOT": ("config_root", str),
    f"{ENV_PREFIX}CONNECT_TIMEOUT": ("connect_timeout", float),
    f"{ENV_PREFIX}COMMAND_TIMEOUT": ("command_timeout", float),
    f"{ENV_PREFIX}TUNNEL_BASE_PORT": ("tunnel_base_port", int),
    f"{ENV_PREFIX}TUNNEL_RETRIES": ("tunnel_retries", int),
    f"{ENV_PREFIX}LOG_LEVEL": ("log_level", str.upper),
}


def runtime_environment(environ: Optional[Mapping[str, str]] = None) -> str:
    """Name of the deployment tier this process runs in."""
    environ = os.environ if environ is None else environ
    return environ.get(f"{ENV_PREFIX}ENV") or DEFAULT_ENVIRONMENT


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False
