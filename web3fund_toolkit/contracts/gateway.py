"""
ContractGateway - the only path to the crowdfunding contract.

Reads:
- getCampaignCount, getCampaign(id), getUserCampaigns(account), admin()

Mutations (signed locally, sent raw):
- createCampaign, donate, withdrawFunds, stopCampaign, deleteCampaign,
  adminDeleteCampaign, changeAdmin

Amounts cross this boundary in decimal ether and are converted exactly to
and from wei here. Every failure surfaces as ``GatewayError`` with the raw
remote text; the gateway does not interpret it. The one exception is a
read of an unknown campaign id, which returns a record with
``exists=False`` instead of raising.

web3 calls are blocking, so each one runs in the default executor.
"""

import asyncio
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from web3 import Web3

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.shared.constants import CampaignConstants, GlobalConstants
from web3fund_toolkit.shared.errors import ErrorKind, classify_error
from web3fund_toolkit.shared.exceptions import GatewayError
from web3fund_toolkit.shared.logging import get_logger
from web3fund_toolkit.shared.services.resource_manager import resource_manager
from web3fund_toolkit.shared.units import format_base_units, to_base_units
from web3fund_toolkit.transactions.models import (
    ActionKind,
    InclusionResult,
    TransactionHandle,
)

T = TypeVar("T")
Amount = Union[str, Decimal]

logger = get_logger(__name__)

ABI_NAME = "Crowdfunding"
DEFAULT_RECEIPT_TIMEOUT = 600  # seconds; callers impose their own deadline


class ContractGateway:
    """
    Async facade over the deployed crowdfunding contract.

    Attributes:
        w3: Web3 instance used for calls and transactions
        contract: Bound contract object
        signer: Local account used for mutations (None for read-only use)
        chain_id: Chain the gateway talks to, used for explorer links
    """

    def __init__(
        self,
        w3: Web3,
        contract_address: str,
        signer: Any = None,
        chain_id: Optional[int] = None,
    ):
        self.w3 = w3
        self.signer = signer
        self.chain_id = chain_id
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address.lower()),
            abi=resource_manager.load_abi(ABI_NAME),
        )

    @classmethod
    def from_provider(
        cls, provider: Any, contract_address: Optional[str] = None
    ) -> "ContractGateway":
        """Build a gateway bound to a connected wallet provider."""
        return cls(
            provider.w3,
            contract_address or GlobalConstants.get_contract_address(),
            signer=provider.get_signer(),
            chain_id=provider.chain_id,
        )

    async def _run(self, label: str, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except GatewayError:
            raise
        except Exception as e:
            logger.debug(f"{label} failed: {e}")
            raise GatewayError(str(e) or type(e).__name__, e)

    async def _read(self, method: str, *args: Any) -> Any:
        fn = getattr(self.contract.functions, method)
        return await self._run(method, lambda: fn(*args).call())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_campaign_count(self) -> int:
        return int(await self._read("getCampaignCount"))

    async def get_admin(self) -> str:
        return str(await self._read("admin"))

    async def get_user_campaigns(self, account: str) -> List[int]:
        ids = await self._read(
            "getUserCampaigns", Web3.to_checksum_address(account.lower())
        )
        return [int(i) for i in ids]

    async def get_campaign(self, campaign_id: int) -> CampaignRecord:
        """
        Read one campaign and normalize it.

        Returns ``CampaignRecord.missing(id)`` when the contract reports the
        id as unknown or returns an empty slot.
        """
        try:
            data = await self._read("getCampaign", int(campaign_id))
        except GatewayError as e:
            if classify_error(e.raw).kind == ErrorKind.CAMPAIGN_NOT_FOUND:
                return CampaignRecord.missing(int(campaign_id))
            raise

        try:
            return self._decode_campaign(int(campaign_id), data)
        except (TypeError, ValueError, IndexError) as e:
            raise GatewayError(
                f"Malformed getCampaign({campaign_id}) result: {e}", e
            )

    @staticmethod
    def _decode_campaign(campaign_id: int, data: Sequence[Any]) -> CampaignRecord:
        """
        Decode the positional tuple
        (owner, title, description, imageHash, goalAmount, totalRaised,
        isActive, milestones, currentMilestone[, exists]).
        """
        owner = str(data[0] or CampaignConstants.ZERO_ADDRESS)
        title = data[1] or ""
        if len(data) > 9:
            exists = bool(data[9])
        else:
            # Deleted or never created slots come back zeroed
            exists = bool(title) or owner != CampaignConstants.ZERO_ADDRESS

        if not exists:
            return CampaignRecord.missing(campaign_id)

        return CampaignRecord(
            id=campaign_id,
            owner=owner,
            title=title,
            description=data[2] or "",
            image_ref=data[3] or "",
            goal_amount=format_base_units(data[4] or 0),
            total_raised=format_base_units(data[5] or 0),
            milestones=tuple(format_base_units(m or 0) for m in (data[7] or [])),
            current_milestone_index=int(data[8] or 0),
            is_active=bool(data[6]),
            exists=True,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_signer(self) -> Any:
        if self.signer is None:
            raise GatewayError("No signer available: wallet not connected")
        return self.signer

    async def _transact(
        self,
        action: ActionKind,
        *args: Any,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> TransactionHandle:
        signer = self._require_signer()
        fn = getattr(self.contract.functions, action.value)

        def build_and_send() -> Any:
            params: Dict[str, Any] = {
                "from": signer.address,
                "nonce": self.w3.eth.get_transaction_count(
                    signer.address, "pending"
                ),
                "value": value,
            }
            if self.chain_id is not None:
                params["chainId"] = self.chain_id
            if gas is not None:
                params["gas"] = gas
            tx = fn(*args).build_transaction(params)
            signed = signer.sign_transaction(tx)
            return self.w3.eth.send_raw_transaction(signed.raw_transaction)

        tx_hash = await self._run(action.value, build_and_send)
        handle = TransactionHandle(
            tx_hash=Web3.to_hex(tx_hash), action=action, chain_id=self.chain_id
        )
        logger.info(f"{action.value} submitted: {handle.tx_hash}")
        return handle

    async def create_campaign(
        self,
        title: str,
        description: str,
        image_ref: str,
        goal: Amount,
        milestones: Sequence[Amount],
    ) -> TransactionHandle:
        return await self._transact(
            ActionKind.CREATE_CAMPAIGN,
            title,
            description,
            image_ref,
            to_base_units(goal),
            [to_base_units(m) for m in milestones],
            gas=CampaignConstants.CREATE_CAMPAIGN_GAS_LIMIT,
        )

    async def donate(self, campaign_id: int, amount: Amount) -> TransactionHandle:
        return await self._transact(
            ActionKind.DONATE, int(campaign_id), value=to_base_units(amount)
        )

    async def withdraw_funds(self, campaign_id: int) -> TransactionHandle:
        return await self._transact(ActionKind.WITHDRAW_FUNDS, int(campaign_id))

    async def stop_campaign(self, campaign_id: int) -> TransactionHandle:
        return await self._transact(ActionKind.STOP_CAMPAIGN, int(campaign_id))

    async def delete_campaign(self, campaign_id: int) -> TransactionHandle:
        return await self._transact(ActionKind.DELETE_CAMPAIGN, int(campaign_id))

    async def admin_delete_campaign(self, campaign_id: int) -> TransactionHandle:
        return await self._transact(
            ActionKind.ADMIN_DELETE_CAMPAIGN, int(campaign_id)
        )

    async def change_admin(self, new_admin: str) -> TransactionHandle:
        return await self._transact(
            ActionKind.CHANGE_ADMIN, Web3.to_checksum_address(new_admin.lower())
        )

    async def wait_for_inclusion(
        self,
        handle: TransactionHandle,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ) -> InclusionResult:
        """Block until the transaction is mined and report its status."""
        receipt = await self._run(
            "wait_for_transaction_receipt",
            lambda: self.w3.eth.wait_for_transaction_receipt(
                handle.tx_hash, timeout=timeout
            ),
        )
        return InclusionResult(
            tx_hash=handle.tx_hash,
            success=receipt["status"] == 1,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )
