"""
Tests for SSH tunnel management.

This module tests local port allocation and retry behaviour of the tunnel
manager against a fake SSH transport.
"""

import asyncio
import errno
from unittest.mock import AsyncMock, Mock, patch

import pytest

from kvbridge.core.exceptions import TunnelError, TunnelExhausted
from kvbridge.infrastructure.services.ssh.forwarder import (
    AsyncSSHTransport,
    TunnelManager,
    is_address_in_use,
)
from kvbridge.infrastructure.services.ssh.ports import PortRegistry

from fakes import FakeSSHTransport


async def _open(manager: TunnelManager):
    return await manager.open("10.0.0.5", 6379, None, "ubuntu", "bastion.example.com")


class TestPortRegistry:
    """Test local port bookkeeping."""

    def test_reserve_from_base(self) -> None:
        ports = PortRegistry(9736)
        assert ports.reserve() == 9736
        assert ports.reserve() == 9737
        assert 9736 in ports
        assert len(ports) == 2

    def test_reserve_skips_tracked(self) -> None:
        ports = PortRegistry(9736)
        ports.reserve(9740)
        assert ports.reserve(9740) == 9741

    def test_release(self) -> None:
        ports = PortRegistry()
        port = ports.reserve()
        assert ports.release(port) is True
        assert ports.release(port) is False
        assert ports.in_use == frozenset()

    def test_overflow(self) -> None:
        ports = PortRegistry(65535)
        ports.reserve()
        with pytest.raises(OverflowError):
            ports.reserve()


class TestAddressInUse:

    def test_errno(self) -> None:
        assert is_address_in_use(OSError(errno.EADDRINUSE, "in use"))

    def test_message(self) -> None:
        assert is_address_in_use(RuntimeError("listen EADDRINUSE: address already in use"))

    def test_other_error(self) -> None:
        assert not is_address_in_use(OSError(errno.ECONNREFUSED, "Connection refused"))


class TestTunnelManager:
    """Test tunnel creation and port retries."""

    async def test_open_tunnel(self, tunnel_manager: TunnelManager, ssh_transport: FakeSSHTransport) -> None:
        handle = await tunnel_manager.open("10.0.0.5", "6379", "KEY", "ubuntu", "bastion.example.com", 2222)

        assert handle.local_port == 9736
        assert 9736 in tunnel_manager.ports
        assert ssh_transport.calls == [{
            "local_port": 9736,
            "remote_host": "10.0.0.5",
            "remote_port": 6379,
            "ssh_user": "ubuntu",
            "ssh_host": "bastion.example.com",
            "ssh_port": 2222,
            "private_key": "KEY",
        }]

    async def test_default_ssh_port(self, tunnel_manager: TunnelManager, ssh_transport: FakeSSHTransport) -> None:
        await tunnel_manager.open("10.0.0.5", 6379, None, "ubuntu", "bastion", None)
        assert ssh_transport.calls[0]["ssh_port"] == 22

    async def test_skips_tracked_ports(self, tunnel_manager: TunnelManager) -> None:
        first = await _open(tunnel_manager)
        second = await _open(tunnel_manager)

        assert first.local_port == 9736
        assert second.local_port == 9737

    async def test_retries_busy_ports(self, tunnel_manager: TunnelManager, ssh_transport: FakeSSHTransport) -> None:
        ssh_transport.busy_ports = {9736, 9737}

        handle = await _open(tunnel_manager)

        assert handle.local_port == 9738
        assert [c["local_port"] for c in ssh_transport.calls] == [9736, 9737, 9738]
        assert tunnel_manager.ports.in_use == frozenset({9738})

    async def test_retry_budget_exhausted(self) -> None:
        transport = FakeSSHTransport(busy_ports=set(range(9736, 9746)))
        manager = TunnelManager(transport=transport, ports=PortRegistry(9736), max_retries=5)

        with pytest.raises(TunnelExhausted):
            await _open(manager)

        assert len(transport.calls) == 5
        assert len(manager.ports) == 0

    async def test_other_error_propagates(self) -> None:
        transport = FakeSSHTransport(error=PermissionError("Permission denied (publickey)"))
        manager = TunnelManager(transport=transport, ports=PortRegistry(9736))

        with pytest.raises(TunnelError) as exc_info:
            await _open(manager)

        assert not isinstance(exc_info.value, TunnelExhausted)
        assert "Permission denied" in str(exc_info.value)
        assert len(transport.calls) == 1
        assert len(manager.ports) == 0

    async def test_cancel_releases_port(self) -> None:
        transport = Mock()
        transport.open = AsyncMock(side_effect=asyncio.CancelledError())
        manager = TunnelManager(transport=transport, ports=PortRegistry(9736))

        with pytest.raises(asyncio.CancelledError):
            await _open(manager)
        assert len(manager.ports) == 0

    async def test_close_twice_releases_once(self, tunnel_manager: TunnelManager, ssh_transport: FakeSSHTransport) -> None:
        handle = await _open(tunnel_manager)
        other = await _open(tunnel_manager)

        await handle.close()
        tunnel_manager.ports.reserve(handle.local_port)
        await handle.close()

        assert handle.closed is True
        assert ssh_transport.sessions[0].close_calls == 1
        assert handle.local_port in tunnel_manager.ports
        assert other.local_port in tunnel_manager.ports


class TestAsyncSSHTransport:
    """Test the asyncssh-backed transport."""

    @patch('kvbridge.infrastructure.services.ssh.forwarder.asyncssh')
    async def test_open_forwards_local_port(self, mock_asyncssh: Mock) -> None:
        connection = Mock()
        connection.forward_local_port = AsyncMock(return_value=Mock())
        connection.wait_closed = AsyncMock()
        mock_asyncssh.connect = AsyncMock(return_value=connection)
        mock_asyncssh.import_private_key.return_value = "imported"

        session = await AsyncSSHTransport().open(9736, "10.0.0.5", 6379, "ubuntu", "bastion", 22, "KEY")

        kwargs = mock_asyncssh.connect.call_args[1]
        assert kwargs["host"] == "bastion"
        assert kwargs["username"] == "ubuntu"
        assert kwargs["client_keys"] == ["imported"]
        connection.forward_local_port.assert_awaited_once_with("localhost", 9736, "10.0.0.5", 6379)

        await session.close()
        connection.close.assert_called_once()

    @patch('kvbridge.infrastructure.services.ssh.forwarder.asyncssh')
    async def test_open_closes_connection_on_failure(self, mock_asyncssh: Mock) -> None:
        connection = Mock()
        connection.forward_local_port = AsyncMock(side_effect=OSError(errno.EADDRINUSE, "in use"))
        connection.wait_closed = AsyncMock()
        mock_asyncssh.connect = AsyncMock(return_value=connection)

        with pytest.raises(OSError):
            await AsyncSSHTransport().open(9736, "10.0.0.5", 6379, "ubuntu", "bastion", 22, None)

        connection.close.assert_called_once()
        connection.wait_closed.assert_awaited_once()
        assert "client_keys" not in mock_asyncssh.connect.call_args[1]
