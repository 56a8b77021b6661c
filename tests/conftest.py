"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests.
"""

from typing import Any, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.contracts.gateway import ContractGateway
from web3fund_toolkit.transactions.models import (
    ActionKind,
    InclusionResult,
    TransactionHandle,
)
from web3fund_toolkit.wallet.connection import ConnectionManager, ConnectionState
from web3fund_toolkit.wallet.provider import WalletProvider

SEPOLIA = 11155111
OWNER = "0x52f541764E6e90eeBc5c21Ff570De0e2D63766B6"
OTHER = "0x7E1444BA99dcdFfE8fBdb42C02fb0DA4AAAcE4d5"
CONTRACT = "0x000000073D065Fc33a3050C2d4a8e82EE5C5C25a"
TX_HASH = "0x" + "ab" * 32


class FakeWalletProvider(WalletProvider):
    """In-memory provider: records calls, optionally fails the handshake."""

    def __init__(
        self,
        account: Optional[str] = OWNER,
        chain_id: Optional[int] = SEPOLIA,
        fail: Optional[Exception] = None,
    ):
        self._account = account
        self._chain_id = chain_id
        self.fail = fail
        self.active = False
        self.reset_calls = 0
        self.sent: List[Tuple[str, Any]] = []
        self.w3 = MagicMock()

    @property
    def account(self) -> Optional[str]:
        return self._account if self.active else None

    @property
    def chain_id(self) -> Optional[int]:
        return self._chain_id if self.active else None

    async def activate(self) -> None:
        if self.fail is not None:
            raise self.fail
        self.active = True

    async def reset_state(self) -> None:
        self.reset_calls += 1
        self.active = False

    def get_signer(self) -> Any:
        signer = MagicMock()
        signer.address = self._account
        return signer

    async def send(self, method: str, params: List[Any]) -> Any:
        self.sent.append((method, params))
        if method == "wallet_switchEthereumChain":
            self._chain_id = int(params[0]["chainId"], 16)
        return None


def make_connection(
    account: Optional[str] = OWNER, chain_id: Optional[int] = SEPOLIA
) -> ConnectionManager:
    """ConnectionManager already in the CONNECTED state."""
    manager = ConnectionManager(FakeWalletProvider(account, chain_id))
    manager._set_state(ConnectionState.connecting())
    manager._set_state(ConnectionState.connected(account, chain_id))
    return manager


def make_campaign(
    campaign_id: int = 0,
    owner: str = OWNER,
    is_active: bool = True,
    exists: bool = True,
    **overrides: Any,
) -> CampaignRecord:
    if not exists:
        return CampaignRecord.missing(campaign_id)
    fields = dict(
        id=campaign_id,
        owner=owner,
        title=f"Campaign {campaign_id}",
        description="Clean water for the village",
        image_ref="QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
        goal_amount="10",
        total_raised="6",
        milestones=("2", "5", "10"),
        current_milestone_index=2,
        is_active=is_active,
        exists=True,
    )
    fields.update(overrides)
    return CampaignRecord(**fields)


@pytest.fixture
def mock_gateway():
    """Gateway double: every contract call is an AsyncMock."""
    gateway = MagicMock(spec=ContractGateway)
    gateway.chain_id = SEPOLIA
    for name in (
        "get_campaign_count",
        "get_admin",
        "get_user_campaigns",
        "get_campaign",
        "create_campaign",
        "donate",
        "withdraw_funds",
        "stop_campaign",
        "delete_campaign",
        "admin_delete_campaign",
        "change_admin",
        "wait_for_inclusion",
    ):
        setattr(gateway, name, AsyncMock(name=name))

    gateway.get_campaign.side_effect = lambda cid: make_campaign(cid)
    gateway.get_admin.return_value = OWNER
    gateway.wait_for_inclusion.return_value = InclusionResult(
        tx_hash=TX_HASH, success=True, block_number=100, gas_used=21000
    )
    for action, name in (
        (ActionKind.CREATE_CAMPAIGN, "create_campaign"),
        (ActionKind.DONATE, "donate"),
        (ActionKind.WITHDRAW_FUNDS, "withdraw_funds"),
        (ActionKind.STOP_CAMPAIGN, "stop_campaign"),
        (ActionKind.DELETE_CAMPAIGN, "delete_campaign"),
        (ActionKind.ADMIN_DELETE_CAMPAIGN, "admin_delete_campaign"),
        (ActionKind.CHANGE_ADMIN, "change_admin"),
    ):
        getattr(gateway, name).return_value = TransactionHandle(
            tx_hash=TX_HASH, action=action, chain_id=SEPOLIA
        )
    return gateway


@pytest.fixture
def connection() -> ConnectionManager:
    return make_connection()


@pytest.fixture
def sample_owner() -> str:
    """Sample campaign owner address for tests."""
    return OWNER


@pytest.fixture
def sample_other_address() -> str:
    """Address that owns nothing and is not the admin."""
    return OTHER


@pytest.fixture
def sample_contract_address() -> str:
    return CONTRACT


@pytest.fixture
def sample_campaign_tuple() -> Tuple[Any, ...]:
    """Raw getCampaign() output: goal 10, milestones 2/5/10, raised 6."""
    ether = 10**18
    return (
        OWNER,
        "Clean water",
        "Wells for three villages",
        "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
        10 * ether,
        6 * ether,
        True,
        [2 * ether, 5 * ether, 10 * ether],
        2,
    )


@pytest.fixture
def campaign_factory():
    """Build CampaignRecord values (defaults: active, owned by sample_owner)."""
    return make_campaign


@pytest.fixture
def connection_factory():
    """Build a ConnectionManager already CONNECTED to a given chain."""
    return make_connection


@pytest.fixture
def fake_provider_cls():
    return FakeWalletProvider


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow-running")
