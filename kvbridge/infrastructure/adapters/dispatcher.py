"""
Command dispatching for store adapters.

CommandDispatcher runs primitives against the lifecycle's connection under
a per-command timeout and layers the typed value operations (JSON, raw
string and binary) on top of them.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Optional

from ...core.exceptions import (
    CommandError,
    CommandTimeout,
    CorruptValue,
    NotConnected,
    UnsupportedCommand,
)
from ...core.interfaces.adapters import BytesLike, IConnectionBackend, Keys
from ..config.settings import DEFAULT_COMMAND_TIMEOUT
from .lifecycle import ConnectionLifecycle

logger = logging.getLogger(__name__)

JSON_SEPARATORS = (",", ":")
BINARY_TYPES = (bytes, bytearray, memoryview)


def _discard_late_result(name: str, label: str):
    def callback(task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f'Discarded late error of abandoned command {name} on store "{label}": {error}')
        else:
            logger.debug(f'Discarded late result of abandoned command {name} on store "{label}"')
    return callback


class CommandDispatcher:
    """
    Executes commands for one adapter.

    A timed out command keeps running on the connection: cancelling a
    request halfway could leave the reply stream out of step with the
    requests. Its eventual result or error is dropped.
    """

    def __init__(
        self,
        lifecycle: ConnectionLifecycle,
        backend: IConnectionBackend,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    ) -> None:
        self._lifecycle = lifecycle
        self._backend = backend
        self._command_timeout = command_timeout

    @property
    def command_timeout(self) -> float:
        return self._command_timeout

    async def command(self, name: str, *args: Any, binary: bool = False) -> Any:
        """
        Execute a primitive command.

        Raises:
            NotConnected: If the lifecycle is not connected.
            UnsupportedCommand: If the backend has no such primitive.
            CommandTimeout: If the command does not settle in time.
        """
        label = self._lifecycle.name
        if not self._lifecycle.is_connected():
            raise NotConnected(f'Store "{label}" is not connected')
        if not self._backend.supports(name):
            raise UnsupportedCommand(
                f'Unsupported command "{name}" for {self._backend.name} store "{label}"',
                details={"command": name}
            )

        call = self._backend.invoke(self._lifecycle.connection, name, *args, binary=binary)
        return await self._race(name, call)

    async def _race(self, name: str, call: Awaitable[Any]) -> Any:
        label = self._lifecycle.name
        task = asyncio.ensure_future(call)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self._command_timeout)
        except asyncio.TimeoutError as e:
            task.add_done_callback(_discard_late_result(name, label))
            raise CommandTimeout(
                f'Command {name} on store "{label}" timed out after {self._command_timeout:g}s',
                details={"command": name, "timeout": self._command_timeout}
            ) from e
        except asyncio.CancelledError:
            task.add_done_callback(_discard_late_result(name, label))
            raise

    async def set(self, key: str, value: Any) -> Any:
        if value is None:
            await self.clear(key)
            return None

        result = await self.command("SET", key, json.dumps(value, separators=JSON_SEPARATORS))
        self._assert_ack("SET", key, result)
        return value

    async def get(self, key: str, default: Any = None) -> Any:
        raw = await self.command("GET", key, binary=True)
        if raw is None:
            return default

        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptValue(
                "Invalid key-value response: Invalid JSON",
                details={"key": key}
            ) from e

        return default if value is None else value

    async def clear(self, key: Keys) -> int:
        keys = [key] if isinstance(key, (str, bytes)) else list(key)
        if not keys:
            return 0
        return int(await self.command("DEL", *keys) or 0)

    async def set_raw(self, key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            await self.clear(key)
            return None
        if not isinstance(value, str):
            raise TypeError(f"set_raw requires a string value, got {type(value).__name__}")

        result = await self.command("SET", key, value)
        self._assert_ack("SET", key, result)
        return value

    async def get_raw(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if default is not None and not isinstance(default, str):
            raise TypeError(f"get_raw requires a string default, got {type(default).__name__}")

        value = await self.command("GET", key)
        return default if value is None else value

    async def set_buffer(self, key: str, value: Optional[BytesLike]) -> Optional[bytes]:
        if value is None:
            await self.clear(key)
            return None
        if not isinstance(value, BINARY_TYPES):
            raise TypeError(f"set_buffer requires a bytes-like value, got {type(value).__name__}")

        payload = bytes(value)
        result = await self.command("SET", key, payload, binary=True)
        self._assert_ack("SET", key, result)
        return payload

    async def get_buffer(self, key: str, default: Optional[BytesLike] = None) -> Optional[bytes]:
        if default is not None and not isinstance(default, BINARY_TYPES):
            raise TypeError(f"get_buffer requires a bytes-like default, got {type(default).__name__}")

        value = await self.command("GET", key, binary=True)
        if value is None:
            return bytes(default) if default is not None else None
        return bytes(value)

    def _assert_ack(self, name: str, key: str, result: Any) -> None:
        if not self._backend.is_ack(result):
            raise CommandError(
                f'Command {name} on key "{key}" was not acknowledged: {result!r}',
                details={"command": name, "key": key, "result": result}
            )
