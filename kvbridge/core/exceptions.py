"""
Exception hierarchy for kvbridge.

Every error raised by the package derives from KVError and carries an
ErrorCode, a human readable message and optional details.
"""

from enum import Enum
from typing import Any, List, Optional


class ErrorCode(Enum):
    """Error codes."""
    UNKNOWN_ERROR = 20000
    CONFIG_INVALID = 20001
    CONFIG_NOT_FOUND = 20002
    MISSING_ENV_VAR = 20003
    EMPTY_ENV_VAR = 20004
    TUNNEL_ERROR = 20010
    TUNNEL_EXHAUSTED = 20011
    CONNECT_ERROR = 20020
    COMMAND_ERROR = 20030
    COMMAND_TIMEOUT = 20031
    NOT_CONNECTED = 20032
    UNSUPPORTED_COMMAND = 20033
    CORRUPT_VALUE = 20034
    DUPLICATE_STORE = 20040
    STORE_NOT_CONNECTED = 20041


class KVError(Exception):
    """Base error."""
    code = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ConfigError(KVError):
    """
    Configuration error with a field path.

    The path accumulates as the error bubbles out of nested structures:
    each level calls ``at(key)`` to prepend its own segment.
    """
    code = ErrorCode.CONFIG_INVALID

    def __init__(
        self,
        message: str,
        path: Optional[List[str]] = None,
        context: Optional[str] = None,
        details: Optional[Any] = None
    ):
        self.path: List[str] = [str(p) for p in (path or [])]
        self.context = context
        super().__init__(message, details)

    @property
    def field_path(self) -> str:
        return ".".join(self.path)

    def at(self, *segments: Any) -> "ConfigError":
        self.path[0:0] = [str(s) for s in segments]
        return self

    def within(self, context: str) -> "ConfigError":
        self.context = context
        return self

    def __str__(self) -> str:
        text = self.message
        if self.path:
            text = f'"{self.field_path}": {text}'
        if self.context:
            text = f"{self.context}: {text}"
        return text


class ConfigInvalid(ConfigError):
    """Config failed schema validation."""
    code = ErrorCode.CONFIG_INVALID


class ConfigNotFound(ConfigError):
    """Config file, environment or store entry is missing."""
    code = ErrorCode.CONFIG_NOT_FOUND


class MissingEnvVar(ConfigError):
    """A template references an undefined environment variable."""
    code = ErrorCode.MISSING_ENV_VAR


class EmptyEnvVar(ConfigError):
    """A template references an environment variable that is empty."""
    code = ErrorCode.EMPTY_ENV_VAR


class TunnelError(KVError):
    """SSH tunnel could not be established."""
    code = ErrorCode.TUNNEL_ERROR


class TunnelExhausted(TunnelError):
    """No free local port found within the retry budget."""
    code = ErrorCode.TUNNEL_EXHAUSTED


class ConnectError(KVError):
    """Initial connection to a store failed."""
    code = ErrorCode.CONNECT_ERROR


class CommandError(KVError):
    """A store command failed."""
    code = ErrorCode.COMMAND_ERROR


class CommandTimeout(CommandError):
    """A store command did not settle within the command timeout."""
    code = ErrorCode.COMMAND_TIMEOUT


class NotConnected(CommandError):
    """Command issued against a store that is not connected."""
    code = ErrorCode.NOT_CONNECTED


class UnsupportedCommand(CommandError):
    """Command name is not a primitive of the backend."""
    code = ErrorCode.UNSUPPORTED_COMMAND


class CorruptValue(CommandError):
    """Stored value is present but cannot be decoded."""
    code = ErrorCode.CORRUPT_VALUE


class RegistryError(KVError):
    """Store registry error."""


class DuplicateStore(RegistryError):
    """A store with the same name is already bound."""
    code = ErrorCode.DUPLICATE_STORE


class StoreNotConnected(RegistryError):
    """No store is bound under the requested name."""
    code = ErrorCode.STORE_NOT_CONNECTED
