"""
Persisted, environment-scoped store configuration.

The config file maps environment name -> store name -> raw store config:

    {
      "development": {"main": {"host": "localhost", "port": 6379}},
      "production": {"main": {"connectionString": "{{ REDIS_URL }}"}}
    }

Raw configs are stored as written, templates included. Reading resolves
templates against environment variables and validates the result.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import aiofiles
import aiofiles.os

from ...core.exceptions import ConfigError, ConfigInvalid, ConfigNotFound
from .interpolation import interpolate
from .models import StoreConfig, validate_store_config
from .settings import DEFAULT_ENVIRONMENT, runtime_environment

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIRECTORY = "_kv"
DEFAULT_CONFIG_FILE = "kv.json"
GITIGNORE_FILE = ".gitignore"


class ConfigManager:
    """
    Reads and writes store configs in a single JSON file.

    The file lives at ``<root>/_kv/kv.json`` by default and is registered
    in ``<root>/.gitignore`` the first time it is written, since it usually
    holds credentials.
    """

    def __init__(
        self,
        root: Union[str, Path] = ".",
        directory: str = DEFAULT_CONFIG_DIRECTORY,
        filename: str = DEFAULT_CONFIG_FILE,
        runtime_env: Optional[str] = None
    ) -> None:
        self._root = Path(root)
        self._relative_path = Path(directory) / filename
        self._runtime_env = runtime_env

    @property
    def pathname(self) -> Path:
        """Absolute location of the config file."""
        return self._root / self._relative_path

    @property
    def runtime_env(self) -> str:
        """Deployment tier of the current process."""
        return self._runtime_env or runtime_environment()

    def exists(self) -> bool:
        return self.pathname.is_file()

    @staticmethod
    def validate(raw: Any, allow_templates: bool = False) -> StoreConfig:
        """Validate a raw store config without touching the file."""
        return validate_store_config(raw, allow_templates=allow_templates)

    async def load(self) -> Dict[str, Any]:
        """
        Load the raw config mapping.

        Raises:
            ConfigNotFound: If the file does not exist.
            ConfigInvalid: If the file is not a JSON object.
        """
        if not self.exists():
            raise ConfigNotFound(f'no key-value config file found at "{self.pathname}"')

        async with aiofiles.open(self.pathname, "r", encoding="utf-8") as f:
            content = await f.read()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigInvalid(f'key-value config invalid at "{self.pathname}": {e}') from e

        if not isinstance(data, dict):
            raise ConfigInvalid(f'key-value config at "{self.pathname}" must be a JSON object')
        return data

    async def write(self, env: str, name: str, raw_config: Mapping[str, Any]) -> StoreConfig:
        """
        Validate a store config and persist it under ``[env][name]``.

        Templates are accepted and persisted unresolved.

        Args:
            env: Environment name, e.g. "development"
            name: Store name, e.g. "main"
            raw_config: Raw store config

        Returns:
            The validated config (templates still unresolved)

        Raises:
            ConfigInvalid: If env/name are not strings or the config is invalid.
        """
        if not env or not name or not isinstance(env, str) or not isinstance(name, str):
            raise ConfigInvalid("env and name must be non-empty strings")

        try:
            validated = self.validate(raw_config, allow_templates=True)
        except ConfigError as e:
            raise e.within(f'could not write config for ["{env}"]["{name}"]')

        if hasattr(raw_config, "to_dict"):
            raw_config = raw_config.to_dict()

        await self._create()
        data = await self.load()
        data.setdefault(env, {})[name] = dict(raw_config)
        await self._save(data)

        logger.info(f'Wrote key-value credentials to "{self.pathname}"["{env}"]["{name}"]')
        return validated

    async def read(self, env: str, name: str, env_vars: Optional[Mapping[str, str]] = None) -> StoreConfig:
        """
        Read, interpolate and validate the config stored under ``[env][name]``.

        When this process runs in ``env`` itself, outside development, and
        the store is marked ``in_vpc``, the tunnel is dropped: that tier
        reaches the store directly.

        Args:
            env: Environment name
            name: Store name
            env_vars: Variables used for templates (defaults to ``os.environ``)

        Raises:
            ConfigNotFound: If the file, environment or store is missing.
            MissingEnvVar: If a template references an undefined variable.
            EmptyEnvVar: If a template references an empty variable.
            ConfigInvalid: If the resolved config is invalid.
        """
        if not env or not name:
            raise ConfigNotFound("must provide env and name")

        data = await self.load()
        if not isinstance(data.get(env), dict):
            raise ConfigNotFound(
                f'environment "{env}" not found in key-value config at "{self.pathname}"'
            )
        if name not in data[env]:
            raise ConfigNotFound(
                f'environment "{env}" store "{name}" not found in key-value config at "{self.pathname}"'
            )

        env_vars = os.environ if env_vars is None else env_vars
        try:
            resolved = interpolate(data[env][name], env_vars)
            config = self.validate(resolved)
        except ConfigError as e:
            raise e.within(f'key-value config error "{self.pathname}"["{env}"]["{name}"]')

        current_env = self.runtime_env
        if current_env == env and current_env != DEFAULT_ENVIRONMENT and config.in_vpc and config.tunnel:
            logger.debug(f'Store "{name}" is in the "{env}" VPC, dropping SSH tunnel')
            config = config.without_tunnel()

        return config

    async def destroy(self) -> None:
        """Remove the config file if present."""
        if self.exists():
            await aiofiles.os.remove(self.pathname)
        logger.info(f'Destroyed key-value credentials at "{self.pathname}"')

    async def _create(self) -> None:
        """Create the config file and register it with git on first use."""
        if not self.exists():
            self.pathname.parent.mkdir(parents=True, exist_ok=True)
            await self._save({})
        await self._register_gitignore()

    async def _save(self, data: Dict[str, Any]) -> None:
        async with aiofiles.open(self.pathname, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))

    async def _register_gitignore(self) -> None:
        entry = self._relative_path.as_posix()
        gitignore = self._root / GITIGNORE_FILE

        if not gitignore.exists():
            async with aiofiles.open(gitignore, "w", encoding="utf-8") as f:
                await f.write(entry + "\n")
            logger.info(f'Created "{GITIGNORE_FILE}" containing "{entry}"')
            return

        async with aiofiles.open(gitignore, "r", encoding="utf-8") as f:
            lines = [line.strip() for line in (await f.read()).splitlines()]
        lines = [line for line in lines if line]

        if entry not in lines:
            lines.append(entry)
            logger.info(f'Appending "{entry}" to "{GITIGNORE_FILE}"')
            async with aiofiles.open(gitignore, "w", encoding="utf-8") as f:
                await f.write("\n".join(lines) + "\n")
