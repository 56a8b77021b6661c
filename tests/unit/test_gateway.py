"""
Unit tests for ContractGateway against a mocked web3 contract.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from web3fund_toolkit.contracts.gateway import ContractGateway
from web3fund_toolkit.shared.constants import CampaignConstants
from web3fund_toolkit.shared.exceptions import GatewayError
from web3fund_toolkit.transactions.models import ActionKind, TransactionHandle

ETHER = 10**18


@pytest.fixture
def contract():
    return MagicMock()


@pytest.fixture
def w3(contract):
    w3 = MagicMock()
    w3.eth.contract.return_value = contract
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = bytes.fromhex("ab" * 32)
    return w3


@pytest.fixture
def signer(sample_owner):
    signer = MagicMock()
    signer.address = sample_owner
    signer.sign_transaction.return_value.raw_transaction = b"\x02signed"
    return signer


@pytest.fixture
def gateway(w3, signer, sample_contract_address):
    return ContractGateway(w3, sample_contract_address, signer=signer, chain_id=11155111)


def call_result(contract, method, value=None, error=None):
    call = getattr(contract.functions, method).return_value.call
    if error is not None:
        call.side_effect = error
    else:
        call.return_value = value


class TestReads:
    def test_contract_is_bound_to_checksummed_address(self, w3, gateway):
        kwargs = w3.eth.contract.call_args.kwargs
        assert kwargs["address"].lower() == "0x000000073d065fc33a3050c2d4a8e82ee5c5c25a"
        assert any(item.get("name") == "getCampaign" for item in kwargs["abi"])

    @pytest.mark.asyncio
    async def test_campaign_is_decoded_to_ether(
        self, gateway, contract, sample_campaign_tuple, sample_owner
    ):
        call_result(contract, "getCampaign", sample_campaign_tuple)

        campaign = await gateway.get_campaign(3)

        assert campaign.id == 3
        assert campaign.owner == sample_owner
        assert campaign.goal_amount == "10"
        assert campaign.total_raised == "6"
        assert campaign.milestones == ("2", "5", "10")
        assert campaign.current_milestone_index == 2
        assert campaign.is_active is True
        assert campaign.exists is True
        assert [m.reached for m in campaign.milestone_progress()] == [True, True, False]
        contract.functions.getCampaign.assert_called_with(3)

    @pytest.mark.asyncio
    async def test_fractional_amounts(self, gateway, contract, sample_campaign_tuple):
        data = list(sample_campaign_tuple)
        data[5] = 2_500_000_000_000_000_000
        call_result(contract, "getCampaign", tuple(data))

        campaign = await gateway.get_campaign(0)

        assert campaign.total_raised == "2.5"
        assert campaign.progress_percent == pytest.approx(25.0)

    @pytest.mark.asyncio
    async def test_unknown_id_revert_is_a_missing_record(self, gateway, contract):
        call_result(
            contract,
            "getCampaign",
            error=Exception("execution reverted: Campaign does not exist"),
        )

        campaign = await gateway.get_campaign(42)

        assert campaign.id == 42
        assert campaign.exists is False

    @pytest.mark.asyncio
    async def test_zeroed_slot_is_a_missing_record(self, gateway, contract):
        call_result(
            contract,
            "getCampaign",
            (CampaignConstants.ZERO_ADDRESS, "", "", "", 0, 0, False, [], 0),
        )

        assert (await gateway.get_campaign(1)).exists is False

    @pytest.mark.asyncio
    async def test_explicit_exists_flag(self, gateway, contract, sample_campaign_tuple):
        call_result(contract, "getCampaign", sample_campaign_tuple + (False,))

        assert (await gateway.get_campaign(1)).exists is False

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_raw_text(self, gateway, contract):
        call_result(contract, "getCampaign", error=ConnectionError("connection reset"))

        with pytest.raises(GatewayError) as exc_info:
            await gateway.get_campaign(1)

        assert exc_info.value.raw == "connection reset"
        assert isinstance(exc_info.value.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_malformed_result(self, gateway, contract):
        call_result(contract, "getCampaign", ("0xabc", "title"))

        with pytest.raises(GatewayError, match="Malformed"):
            await gateway.get_campaign(1)

    @pytest.mark.asyncio
    async def test_scalar_reads(self, gateway, contract, sample_owner):
        call_result(contract, "getCampaignCount", 12)
        call_result(contract, "admin", sample_owner)
        call_result(contract, "getUserCampaigns", [3, 1])

        assert await gateway.get_campaign_count() == 12
        assert await gateway.get_admin() == sample_owner
        assert await gateway.get_user_campaigns(sample_owner.lower()) == [3, 1]


class TestMutations:
    @pytest.mark.asyncio
    async def test_donate_sends_exact_value(self, gateway, contract, w3, signer):
        handle = await gateway.donate(3, Decimal("0.5"))

        contract.functions.donate.assert_called_with(3)
        params = contract.functions.donate.return_value.build_transaction.call_args[0][0]
        assert params["value"] == ETHER // 2
        assert params["nonce"] == 7
        assert params["chainId"] == 11155111
        assert params["from"] == signer.address
        assert "gas" not in params
        w3.eth.send_raw_transaction.assert_called_once_with(b"\x02signed")

        assert handle.tx_hash == "0x" + "ab" * 32
        assert handle.action == ActionKind.DONATE
        assert handle.explorer_url.startswith("https://sepolia.etherscan.io/tx/")

    @pytest.mark.asyncio
    async def test_create_campaign_converts_amounts(self, gateway, contract):
        await gateway.create_campaign(
            "Water", "Wells", "Qm123", "10", [Decimal("2"), "5.5"]
        )

        contract.functions.createCampaign.assert_called_with(
            "Water", "Wells", "Qm123", 10 * ETHER, [2 * ETHER, 5_500_000_000_000_000_000]
        )
        params = contract.functions.createCampaign.return_value.build_transaction.call_args[0][0]
        assert params["gas"] == CampaignConstants.CREATE_CAMPAIGN_GAS_LIMIT
        assert params["value"] == 0

    @pytest.mark.asyncio
    async def test_campaign_actions(self, gateway, contract):
        await gateway.withdraw_funds(1)
        await gateway.stop_campaign(2)
        await gateway.delete_campaign(3)
        await gateway.admin_delete_campaign(4)

        contract.functions.withdrawFunds.assert_called_with(1)
        contract.functions.stopCampaign.assert_called_with(2)
        contract.functions.deleteCampaign.assert_called_with(3)
        contract.functions.adminDeleteCampaign.assert_called_with(4)

    @pytest.mark.asyncio
    async def test_revert_surfaces_as_gateway_error(self, gateway, w3):
        w3.eth.send_raw_transaction.side_effect = ValueError(
            "execution reverted: No funds to withdraw"
        )

        with pytest.raises(GatewayError) as exc_info:
            await gateway.withdraw_funds(1)

        assert "No funds to withdraw" in exc_info.value.raw

    @pytest.mark.asyncio
    async def test_mutation_without_signer(self, w3, sample_contract_address):
        read_only = ContractGateway(w3, sample_contract_address)

        with pytest.raises(GatewayError, match="No signer"):
            await read_only.stop_campaign(1)


class TestInclusion:
    @pytest.mark.asyncio
    async def test_successful_receipt(self, gateway, w3):
        w3.eth.wait_for_transaction_receipt.return_value = {
            "status": 1,
            "blockNumber": 123,
            "gasUsed": 50000,
        }
        handle = TransactionHandle(tx_hash="0x" + "ab" * 32, action=ActionKind.DONATE)

        result = await gateway.wait_for_inclusion(handle, timeout=5)

        assert result.success is True
        assert result.block_number == 123
        assert result.gas_used == 50000
        w3.eth.wait_for_transaction_receipt.assert_called_once_with(
            handle.tx_hash, timeout=5
        )

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, gateway, w3):
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 9}
        handle = TransactionHandle(tx_hash="0x" + "ab" * 32, action=ActionKind.DONATE)

        assert (await gateway.wait_for_inclusion(handle)).success is False


def test_from_provider(fake_provider_cls, sample_contract_address):
    provider = fake_provider_cls()
    provider.active = True

    gateway = ContractGateway.from_provider(provider, sample_contract_address)

    assert gateway.w3 is provider.w3
    assert gateway.chain_id == 11155111
    assert gateway.signer is not None
