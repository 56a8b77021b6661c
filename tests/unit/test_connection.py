"""
Unit tests for the wallet ConnectionManager state machine.
"""

import asyncio

import pytest

from web3fund_toolkit.shared.errors import ErrorKind
from web3fund_toolkit.shared.exceptions import (
    NoProviderException,
    UserRejectedException,
)
from web3fund_toolkit.wallet.connection import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
)


class TestConnect:
    @pytest.mark.asyncio
    async def test_successful_handshake(self, fake_provider_cls, sample_owner):
        manager = ConnectionManager(fake_provider_cls(chain_id=11155111))
        seen = []
        manager.subscribe(lambda state: seen.append(state.status))

        state = await manager.connect()

        assert state.status == ConnectionStatus.CONNECTED
        assert manager.account == sample_owner
        assert manager.chain_id == 11155111
        assert manager.network.supported is True
        assert seen == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]

    @pytest.mark.asyncio
    async def test_no_provider(self):
        manager = ConnectionManager(None)

        state = await manager.connect()

        assert state.status == ConnectionStatus.ERROR
        assert state.error.kind == ErrorKind.NO_PROVIDER
        assert "MetaMask" in state.message

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, fake_provider_cls):
        manager = ConnectionManager(
            fake_provider_cls(fail=NoProviderException("No wallet provider configured"))
        )

        state = await manager.connect()

        assert state.error.kind == ErrorKind.NO_PROVIDER

    @pytest.mark.asyncio
    async def test_user_rejection(self, fake_provider_cls):
        manager = ConnectionManager(
            fake_provider_cls(fail=UserRejectedException("User rejected the request."))
        )

        state = await manager.connect()

        assert state.status == ConnectionStatus.ERROR
        assert state.error.kind == ErrorKind.CONNECTION_REJECTED
        assert state.message == "User rejected the request."

    @pytest.mark.asyncio
    async def test_no_authorized_account(self, fake_provider_cls):
        manager = ConnectionManager(fake_provider_cls(account=None))

        state = await manager.connect()

        assert state.error.kind == ErrorKind.CONNECTION_REJECTED

    @pytest.mark.asyncio
    async def test_unexpected_provider_failure_does_not_raise(self, fake_provider_cls):
        manager = ConnectionManager(fake_provider_cls(fail=RuntimeError("boom")))

        state = await manager.connect()

        assert state.status == ConnectionStatus.ERROR

    @pytest.mark.asyncio
    async def test_reconnect_after_error(self, fake_provider_cls):
        provider = fake_provider_cls(fail=RuntimeError("boom"))
        manager = ConnectionManager(provider)
        await manager.connect()

        provider.fail = None
        state = await manager.connect()

        assert state.is_connected
        assert state.error is None

    @pytest.mark.asyncio
    async def test_unsupported_network_still_connects(self, fake_provider_cls):
        manager = ConnectionManager(fake_provider_cls(chain_id=1))

        state = await manager.connect()

        assert state.is_connected
        assert manager.network.supported is False
        assert manager.network.label == "Unsupported Network"


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_falls_back_to_reset_state(self, fake_provider_cls):
        provider = fake_provider_cls()
        manager = ConnectionManager(provider)
        await manager.connect()

        state = await manager.disconnect()

        assert state.status == ConnectionStatus.DISCONNECTED
        assert state.account is None
        assert provider.reset_calls == 1

    @pytest.mark.asyncio
    async def test_prefers_deactivate(self, fake_provider_cls):
        calls = []

        class DeactivatingProvider(fake_provider_cls):
            async def deactivate(self):
                calls.append("deactivate")

        provider = DeactivatingProvider()
        manager = ConnectionManager(provider)
        await manager.connect()

        await manager.disconnect()

        assert calls == ["deactivate"]
        assert provider.reset_calls == 0

    @pytest.mark.asyncio
    async def test_disconnect_during_handshake_wins(self, fake_provider_cls):
        release = asyncio.Event()

        class SlowProvider(fake_provider_cls):
            async def activate(self):
                await release.wait()
                await super().activate()

        manager = ConnectionManager(SlowProvider())
        seen = []
        manager.subscribe(lambda state: seen.append(state.status))

        pending = asyncio.ensure_future(manager.connect())
        await asyncio.sleep(0)
        assert manager.state.status == ConnectionStatus.CONNECTING

        await manager.disconnect()
        release.set()
        state = await pending

        assert state.status == ConnectionStatus.DISCONNECTED
        assert manager.account is None
        assert seen == [ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_failed_handshake_after_disconnect_is_dropped(
        self, fake_provider_cls
    ):
        release = asyncio.Event()

        class SlowRejectingProvider(fake_provider_cls):
            async def activate(self):
                await release.wait()
                raise UserRejectedException("User rejected the request")

        manager = ConnectionManager(SlowRejectingProvider())

        pending = asyncio.ensure_future(manager.connect())
        await asyncio.sleep(0)
        await manager.disconnect()
        release.set()
        state = await pending

        assert state.status == ConnectionStatus.DISCONNECTED
        assert state.error is None

    @pytest.mark.asyncio
    async def test_teardown_errors_still_disconnect(self, fake_provider_cls):
        class BrokenProvider(fake_provider_cls):
            async def reset_state(self):
                raise RuntimeError("stuck")

        manager = ConnectionManager(BrokenProvider())
        await manager.connect()

        state = await manager.disconnect()

        assert state.status == ConnectionStatus.DISCONNECTED


class TestProviderEvents:
    def test_account_change(self, connection_factory, sample_other_address):
        manager = connection_factory()

        state = manager.notify_provider_change(sample_other_address, 5)

        assert state.account == sample_other_address
        assert state.chain_id == 5

    def test_revoked_account_disconnects(self, connection_factory):
        manager = connection_factory()

        state = manager.notify_provider_change(None, 5)

        assert state.status == ConnectionStatus.DISCONNECTED

    def test_ignored_when_not_connected(self, fake_provider_cls, sample_owner):
        manager = ConnectionManager(fake_provider_cls())

        state = manager.notify_provider_change(sample_owner, 5)

        assert state.status == ConnectionStatus.DISCONNECTED

    def test_unsubscribe(self, connection_factory, sample_owner):
        manager = connection_factory()
        seen = []
        unsubscribe = manager.subscribe(seen.append)

        manager.notify_provider_change(sample_owner, 5)
        unsubscribe()
        manager.notify_provider_change(sample_owner, 97)

        assert len(seen) == 1

    def test_failing_listener_does_not_break_updates(self, connection_factory, sample_owner):
        manager = connection_factory()

        def broken(state):
            raise RuntimeError("listener bug")

        manager.subscribe(broken)
        state = manager.notify_provider_change(sample_owner, 97)

        assert state.chain_id == 97

    def test_illegal_transition(self, fake_provider_cls):
        manager = ConnectionManager(fake_provider_cls())
        with pytest.raises(ValueError):
            manager._set_state(ConnectionState.connected("0xabc", 5))


class TestSwitchNetwork:
    @pytest.mark.asyncio
    async def test_switch_updates_chain(self, fake_provider_cls):
        provider = fake_provider_cls(chain_id=1)
        manager = ConnectionManager(provider)
        await manager.connect()

        switched = await manager.switch_network(11155111)

        assert switched is True
        assert provider.sent == [
            ("wallet_switchEthereumChain", [{"chainId": "0xaa36a7"}])
        ]
        assert manager.network.supported is True

    @pytest.mark.asyncio
    async def test_switch_failure_keeps_state(self, fake_provider_cls):
        class RefusingProvider(fake_provider_cls):
            async def send(self, method, params):
                raise UserRejectedException("User rejected the request.")

        manager = ConnectionManager(RefusingProvider(chain_id=1))
        await manager.connect()

        switched = await manager.switch_network(5)

        assert switched is False
        assert manager.chain_id == 1

    @pytest.mark.asyncio
    async def test_switch_requires_connection(self, fake_provider_cls):
        manager = ConnectionManager(fake_provider_cls())
        assert await manager.switch_network(5) is False
