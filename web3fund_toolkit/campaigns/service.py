"""
CampaignService - batch reader for Web3Fund campaigns

This service handles:
1. Listing every campaign (public listing, admin view) or one account's campaigns
2. Fetching in fixed-size batches: ids inside a batch are read concurrently,
   batches run one after another so at most BATCH_SIZE reads are outstanding
3. Isolating per-campaign failures: a campaign that cannot be read is
   dropped and reported as a warning, the listing carries on
4. Applying the display filter (active-only for public listings)

Records arrive from the gateway already normalized to decimal ether and
are returned in ascending id order.
"""

import asyncio
from typing import Iterable, List, Optional

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.commands.validation import same_address
from web3fund_toolkit.contracts.gateway import ContractGateway
from web3fund_toolkit.shared.constants import CampaignConstants
from web3fund_toolkit.shared.exceptions import CampaignLoadError, GatewayError
from web3fund_toolkit.shared.logging import get_logger
from web3fund_toolkit.shared.results import Result

logger = get_logger(__name__)

SOURCE = "campaign_reader"


class CampaignService:
    """
    Service for reading campaign collections through a ``ContractGateway``.

    Attributes:
        gateway: Contract gateway used for every read
        batch_size: Number of concurrent reads per batch
    """

    def __init__(
        self,
        gateway: ContractGateway,
        batch_size: int = CampaignConstants.BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.gateway = gateway
        self.batch_size = batch_size

    async def _fetch_one(
        self, campaign_id: int, result: Result
    ) -> Optional[CampaignRecord]:
        try:
            return await self.gateway.get_campaign(campaign_id)
        except GatewayError as e:
            logger.warning(f"Failed to fetch campaign {campaign_id}: {e.raw[:100]}")
            result.add_warning(
                SOURCE,
                f"Campaign {campaign_id} could not be loaded",
                context={"campaign_id": campaign_id},
                exception=e,
            )
            return None

    async def _fetch_in_batches(
        self, campaign_ids: List[int], result: Result
    ) -> List[CampaignRecord]:
        records: List[CampaignRecord] = []
        for start in range(0, len(campaign_ids), self.batch_size):
            chunk = campaign_ids[start : start + self.batch_size]
            batch = await asyncio.gather(
                *(self._fetch_one(cid, result) for cid in chunk)
            )
            records.extend(r for r in batch if r is not None)
        return records

    async def load_all_with_report(self) -> Result[List[CampaignRecord]]:
        """
        Load every active campaign, with warnings for skipped ids.

        Raises:
            CampaignLoadError: if the campaign count cannot be read
        """
        try:
            count = await self.gateway.get_campaign_count()
        except GatewayError as e:
            logger.error(f"Error loading campaigns: {e.raw}")
            raise CampaignLoadError("Failed to load campaigns", raw=e.raw)

        result: Result[List[CampaignRecord]] = Result.ok([])
        records = await self._fetch_in_batches(list(range(count)), result)
        result.data = [r for r in records if r.is_fundable]

        logger.debug(
            f"Loaded {len(result.data)} active of {count} campaigns "
            f"({len(result.errors)} skipped)"
        )
        return result

    async def load_all(self) -> List[CampaignRecord]:
        """
        Load every active campaign.

        Example:
            >>> service = CampaignService(gateway)
            >>> for c in await service.load_all():
            >>>     print(f"#{c.id} {c.title}: {c.total_raised}/{c.goal_amount}")
        """
        return (await self.load_all_with_report()).data or []

    async def load_for_account_with_report(
        self, account: str
    ) -> Result[List[CampaignRecord]]:
        """
        Load every campaign created by ``account``, active or not.

        Raises:
            CampaignLoadError: if the account's campaign ids cannot be read
        """
        try:
            campaign_ids = await self.gateway.get_user_campaigns(account)
        except GatewayError as e:
            logger.error(f"Failed to fetch campaigns of {account}: {e.raw}")
            raise CampaignLoadError("Failed to load your campaigns", raw=e.raw)

        result: Result[List[CampaignRecord]] = Result.ok([])
        ordered_ids = sorted(set(campaign_ids))
        result.data = await self._fetch_in_batches(ordered_ids, result)
        return result

    async def load_for_account(self, account: str) -> List[CampaignRecord]:
        return (await self.load_for_account_with_report(account)).data or []

    async def load_admin_view(self) -> List[CampaignRecord]:
        """Campaigns the admin can moderate (the active listing)."""
        return await self.load_all()

    async def load_campaign(self, campaign_id: int) -> CampaignRecord:
        """
        Load a single campaign for a detail view.

        Unknown ids come back with ``exists=False``; transport failures
        propagate as ``GatewayError``.
        """
        return await self.gateway.get_campaign(campaign_id)

    async def is_admin(self, account: Optional[str]) -> bool:
        """Whether ``account`` is the contract admin (case-insensitive)."""
        if not account:
            return False
        return same_address(await self.gateway.get_admin(), account)

    @staticmethod
    def search(
        campaigns: Iterable[CampaignRecord], query: str
    ) -> List[CampaignRecord]:
        """Filter a loaded listing by title/description substring."""
        return [c for c in campaigns if c.matches(query)]
