"""
Shared fixtures for kvbridge tests.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from kvbridge.infrastructure.config.settings import KVSettings
from kvbridge.infrastructure.services.ssh.forwarder import TunnelManager
from kvbridge.infrastructure.services.ssh.ports import PortRegistry

from fakes import FakeRedisFactory, FakeSSHTransport


@pytest.fixture
def redis_factory() -> FakeRedisFactory:
    """Create a fake redis client factory."""
    return FakeRedisFactory()


@pytest.fixture
def ssh_transport() -> FakeSSHTransport:
    """Create a fake SSH transport."""
    return FakeSSHTransport()


@pytest.fixture
def tunnel_manager(ssh_transport: FakeSSHTransport) -> TunnelManager:
    """Create a tunnel manager over the fake transport."""
    return TunnelManager(transport=ssh_transport, ports=PortRegistry(9736))


@pytest.fixture
def settings(tmp_path) -> KVSettings:
    """Settings with short timeouts rooted in a temporary directory."""
    return KVSettings(
        environment="development",
        config_root=str(tmp_path),
        connect_timeout=0.5,
        command_timeout=0.2
    )


@pytest.fixture
def connection_refused() -> Exception:
    return RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
