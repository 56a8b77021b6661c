"""
Type definitions for Web3Fund campaigns.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple, TypedDict

from web3fund_toolkit.shared.constants import CampaignConstants

# =============================================================================
# TYPED DICTS (for JSON serialization)
# =============================================================================


class MilestoneDict(TypedDict):
    """Milestone progress dictionary."""

    index: int
    amount: str
    reached: bool


class CampaignRecordDict(TypedDict):
    """Campaign dictionary for JSON export."""

    id: int
    owner: str
    title: str
    description: str
    image_ref: str
    goal_amount: str
    total_raised: str
    milestones: List[MilestoneDict]
    current_milestone_index: int
    is_active: bool
    exists: bool
    progress_percent: float


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass(frozen=True)
class MilestoneView:
    """One funding threshold and whether the contract reports it reached."""

    index: int
    amount: str  # Decimal ether
    reached: bool


@dataclass(frozen=True)
class CampaignRecord:
    """
    Read-only snapshot of one campaign as stored by the contract.

    Monetary fields are decimal ether strings. ``current_milestone_index``
    is taken from the contract as-is; milestone progress is derived from it
    and never recomputed from ``total_raised``. Records are replaced
    wholesale on refresh, never patched.
    """

    id: int  # Campaign ID assigned by the contract
    owner: str  # Creator address
    title: str
    description: str
    image_ref: str  # Content address (IPFS CID)
    goal_amount: str  # Funding goal (ether)
    total_raised: str  # Total donated so far (ether)
    milestones: Tuple[str, ...] = field(default_factory=tuple)  # Thresholds (ether)
    current_milestone_index: int = 0  # Number of thresholds reached
    is_active: bool = False  # Accepts donations
    exists: bool = True  # False for never created or deleted ids

    @classmethod
    def missing(cls, campaign_id: int) -> "CampaignRecord":
        """Placeholder for an id the contract does not know about."""
        return cls(
            id=campaign_id,
            owner=CampaignConstants.ZERO_ADDRESS,
            title="",
            description="",
            image_ref="",
            goal_amount="0",
            total_raised="0",
            milestones=(),
            current_milestone_index=0,
            is_active=False,
            exists=False,
        )

    @property
    def is_fundable(self) -> bool:
        return self.exists and self.is_active

    @property
    def progress_percent(self) -> float:
        """Share of the goal raised, capped at 100."""
        goal = Decimal(self.goal_amount)
        if goal <= 0:
            return 0.0
        percent = Decimal(self.total_raised) / goal * 100
        return float(min(Decimal(100), percent))

    def milestone_progress(self) -> List[MilestoneView]:
        """Milestones with reached flags: indexes below the current one are reached."""
        reached_count = max(
            0, min(self.current_milestone_index, len(self.milestones))
        )
        return [
            MilestoneView(index=i, amount=amount, reached=i < reached_count)
            for i, amount in enumerate(self.milestones)
        ]

    @property
    def next_milestone(self) -> Optional[MilestoneView]:
        for milestone in self.milestone_progress():
            if not milestone.reached:
                return milestone
        return None

    def is_owned_by(self, account: Optional[str]) -> bool:
        return bool(account) and self.owner.lower() == account.lower()

    def matches(self, query: str) -> bool:
        """Case-insensitive search over title and description."""
        needle = query.strip().lower()
        if not needle:
            return True
        return needle in self.title.lower() or needle in self.description.lower()

    def to_dict(self) -> CampaignRecordDict:
        return {
            "id": self.id,
            "owner": self.owner,
            "title": self.title,
            "description": self.description,
            "image_ref": self.image_ref,
            "goal_amount": self.goal_amount,
            "total_raised": self.total_raised,
            "milestones": [
                {"index": m.index, "amount": m.amount, "reached": m.reached}
                for m in self.milestone_progress()
            ],
            "current_milestone_index": self.current_milestone_index,
            "is_active": self.is_active,
            "exists": self.exists,
            "progress_percent": self.progress_percent,
        }
