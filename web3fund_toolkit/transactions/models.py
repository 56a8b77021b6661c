"""
Type definitions for mutating contract calls and their lifecycle.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.shared.errors import ClassifiedError
from web3fund_toolkit.shared.network import get_explorer_tx_url

# =============================================================================
# ENUMS
# =============================================================================


class ActionKind(Enum):
    """Mutating contract calls, valued by their contract method name."""

    CREATE_CAMPAIGN = "createCampaign"
    DONATE = "donate"
    WITHDRAW_FUNDS = "withdrawFunds"
    STOP_CAMPAIGN = "stopCampaign"
    DELETE_CAMPAIGN = "deleteCampaign"
    ADMIN_DELETE_CAMPAIGN = "adminDeleteCampaign"
    CHANGE_ADMIN = "changeAdmin"

    @property
    def targets_campaign(self) -> bool:
        return self not in (ActionKind.CREATE_CAMPAIGN, ActionKind.CHANGE_ADMIN)

    @property
    def requires_owner(self) -> bool:
        return self in (
            ActionKind.WITHDRAW_FUNDS,
            ActionKind.STOP_CAMPAIGN,
            ActionKind.DELETE_CAMPAIGN,
        )


class TransactionPhase(Enum):
    IDLE = "idle"
    BUILDING = "building"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TRANSITIONS: Dict[TransactionPhase, FrozenSet[TransactionPhase]] = {
    TransactionPhase.IDLE: frozenset({TransactionPhase.BUILDING}),
    TransactionPhase.BUILDING: frozenset(
        {TransactionPhase.SUBMITTED, TransactionPhase.FAILED}
    ),
    TransactionPhase.SUBMITTED: frozenset(
        {TransactionPhase.CONFIRMED, TransactionPhase.FAILED}
    ),
    TransactionPhase.CONFIRMED: frozenset({TransactionPhase.IDLE}),
    TransactionPhase.FAILED: frozenset({TransactionPhase.IDLE}),
}


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass(frozen=True)
class TransactionHandle:
    """Reference to a dispatched transaction."""

    tx_hash: str  # 0x-prefixed hash
    action: ActionKind
    chain_id: Optional[int] = None

    @property
    def explorer_url(self) -> str:
        return get_explorer_tx_url(self.chain_id, self.tx_hash)


@dataclass(frozen=True)
class InclusionResult:
    """What the chain reported once the transaction was mined."""

    tx_hash: str
    success: bool  # receipt status == 1
    block_number: Optional[int] = None
    gas_used: Optional[int] = None


@dataclass(frozen=True)
class TransactionOutcome:
    """
    A confirmed action plus the data refreshed after it.

    ``refreshed`` is False when the follow-up read failed; the action
    itself still succeeded.
    """

    action: ActionKind
    handle: TransactionHandle
    inclusion: InclusionResult
    refreshed: bool = False
    campaign: Optional[CampaignRecord] = None
    campaigns: List[CampaignRecord] = field(default_factory=list)
    admin: Optional[str] = None


@dataclass(frozen=True)
class TransactionState:
    """
    Snapshot of one action slot.

    Only one of ``handle``/``outcome``/``error`` is meaningful for a given
    phase. ``instance_id`` identifies the submission that produced the
    state, so late results from an abandoned submission can be dropped.
    """

    phase: TransactionPhase = TransactionPhase.IDLE
    action: Optional[ActionKind] = None
    instance_id: int = 0
    handle: Optional[TransactionHandle] = None
    outcome: Optional[TransactionOutcome] = None
    error: Optional[ClassifiedError] = None

    @classmethod
    def idle(cls) -> "TransactionState":
        return cls()

    @property
    def is_busy(self) -> bool:
        return self.phase in (TransactionPhase.BUILDING, TransactionPhase.SUBMITTED)

    @property
    def is_terminal(self) -> bool:
        return self.phase in (TransactionPhase.CONFIRMED, TransactionPhase.FAILED)

    def transition(self, phase: TransactionPhase, **changes: Any) -> "TransactionState":
        """Return the next state, enforcing the transition table."""
        if phase not in TRANSITIONS[self.phase]:
            raise ValueError(
                f"Illegal transaction transition {self.phase.value} -> {phase.value}"
            )
        return replace(self, phase=phase, **changes)
