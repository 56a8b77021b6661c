"""
TransactionOrchestrator - lifecycle of one mutating contract call

Each logical action slot (by default one per action kind) runs the state
machine

    IDLE -> BUILDING -> SUBMITTED -> CONFIRMED
                  \\           \\
                   -> FAILED    -> FAILED

BUILDING checks every precondition before anything is sent: wallet
connected, network supported, inputs valid, then read-backed checks
(campaign active, owner or admin). A violation goes straight to FAILED and
the gateway never sees a submission; with an unsupported network the
gateway is not touched at all.

SUBMITTED waits for inclusion. A caller deadline turns the slot FAILED
(TIMEOUT) while the wait keeps running in the background; its late result
is recognized by instance id and dropped. After a successful inclusion the
affected data is re-read before CONFIRMED is reported. A failed re-read is
logged and the action still counts as confirmed.
Any other unexpected error while the slot is busy ends it FAILED with
REMOTE_CALL_FAILED, so the slot can always be used again.

Nothing is ever re-submitted automatically.
"""

import asyncio
import functools
import itertools
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.campaigns.service import CampaignService
from web3fund_toolkit.commands.validation import (
    InputValidationError,
    parse_milestones,
    validate_campaign_id,
    validate_eth_address,
    validate_non_empty,
    validate_positive_amount,
)
from web3fund_toolkit.contracts.gateway import ContractGateway
from web3fund_toolkit.shared.constants import CampaignConstants
from web3fund_toolkit.shared.errors import ClassifiedError, ErrorKind, classify_error
from web3fund_toolkit.shared.exceptions import (
    ActionInProgressException,
    CampaignLoadError,
    GatewayError,
)
from web3fund_toolkit.shared.logging import get_logger
from web3fund_toolkit.shared.network import supported_network_labels
from web3fund_toolkit.transactions.models import (
    ActionKind,
    InclusionResult,
    TransactionHandle,
    TransactionOutcome,
    TransactionPhase,
    TransactionState,
)
from web3fund_toolkit.wallet.connection import ConnectionManager

logger = get_logger(__name__)

StateListener = Callable[[str, TransactionState], None]

_USE_DEFAULT = object()


class _PreconditionFailed(Exception):
    def __init__(self, error: ClassifiedError):
        super().__init__(error.message)
        self.error = error


class TransactionOrchestrator:
    """
    Runs mutating actions through the gateway, one state machine per slot.

    Attributes:
        connection: Source of the active account and network
        gateway: Contract gateway used for prechecks, dispatch and inclusion
        reader: Campaign reader used to refresh data after confirmation
        min_donation: Smallest accepted donation in ether
        timeout: Default deadline in seconds for inclusion (None: no deadline)
    """

    def __init__(
        self,
        connection: ConnectionManager,
        gateway: ContractGateway,
        reader: Optional[CampaignService] = None,
        min_donation: Decimal = CampaignConstants.MIN_DONATION,
        timeout: Optional[float] = CampaignConstants.TX_TIMEOUT,
    ):
        self.connection = connection
        self.gateway = gateway
        self.reader = reader or CampaignService(gateway)
        self.min_donation = min_donation
        self.timeout = timeout
        self._states: Dict[str, TransactionState] = {}
        self._instance_ids = itertools.count(1)
        self._listeners: List[StateListener] = []

    # ------------------------------------------------------------------
    # Slot state
    # ------------------------------------------------------------------

    def get_state(self, slot: Union[str, ActionKind]) -> TransactionState:
        key = slot.value if isinstance(slot, ActionKind) else slot
        return self._states.get(key, TransactionState.idle())

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def acknowledge(self, slot: Union[str, ActionKind]) -> TransactionState:
        """Reset a finished slot (CONFIRMED or FAILED) back to IDLE."""
        key = slot.value if isinstance(slot, ActionKind) else slot
        current = self.get_state(key)
        if current.is_terminal:
            self._store(
                key,
                current.transition(
                    TransactionPhase.IDLE, handle=None, outcome=None, error=None
                ),
            )
        return self.get_state(key)

    def _store(self, slot: str, state: TransactionState) -> None:
        previous = self._states.get(slot, TransactionState.idle())
        logger.debug(
            f"[{slot}] {previous.phase.value} -> {state.phase.value} "
            f"(#{state.instance_id})"
        )
        self._states[slot] = state
        for listener in list(self._listeners):
            try:
                listener(slot, state)
            except Exception:
                logger.exception("Transaction listener failed")

    def _advance(
        self, slot: str, instance_id: int, phase: TransactionPhase, **changes: Any
    ) -> TransactionState:
        current = self.get_state(slot)
        if current.instance_id != instance_id:
            logger.debug(f"[{slot}] dropping stale update for #{instance_id}")
            return current
        new_state = current.transition(phase, **changes)
        self._store(slot, new_state)
        return new_state

    def _fail(
        self, slot: str, instance_id: int, error: ClassifiedError
    ) -> TransactionState:
        logger.info(f"[{slot}] failed: {error.kind.value} - {error.message}")
        return self._advance(slot, instance_id, TransactionPhase.FAILED, error=error)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        action: Union[ActionKind, str],
        params: Optional[Mapping[str, Any]] = None,
        *,
        slot: Optional[str] = None,
        timeout: Any = _USE_DEFAULT,
    ) -> TransactionState:
        """
        Run ``action`` to completion and return the final slot state.

        Args:
            action: Mutation to perform
            params: Action inputs (see ``_validate_inputs``)
            slot: Action slot key, defaults to the action's method name
            timeout: Seconds to wait for inclusion, None to wait indefinitely

        Raises:
            ActionInProgressException: if the slot is BUILDING or SUBMITTED
        """
        action = ActionKind(action)
        params = dict(params or {})
        key = slot or action.value
        deadline = self.timeout if timeout is _USE_DEFAULT else timeout

        current = self.get_state(key)
        if current.is_busy:
            raise ActionInProgressException(
                f"{key} is already {current.phase.value}"
            )
        if current.is_terminal:
            self.acknowledge(key)

        instance_id = next(self._instance_ids)
        self._store(
            key,
            self.get_state(key).transition(
                TransactionPhase.BUILDING,
                action=action,
                instance_id=instance_id,
                handle=None,
                outcome=None,
                error=None,
            ),
        )

        try:
            return await self._execute(key, instance_id, action, params, deadline)
        except Exception as e:
            if not self.get_state(key).is_busy:
                raise
            logger.exception(f"[{key}] {action.value} aborted")
            return self._fail(
                key,
                instance_id,
                ClassifiedError(
                    kind=ErrorKind.REMOTE_CALL_FAILED,
                    message=str(e) or "Remote call failed",
                    raw=str(e),
                ),
            )

    async def _execute(
        self,
        key: str,
        instance_id: int,
        action: ActionKind,
        params: Dict[str, Any],
        deadline: Optional[float],
    ) -> TransactionState:
        try:
            prepared = self._check_session()
            prepared.update(self._validate_inputs(action, params))
            await self._check_remote_preconditions(action, params, prepared)
        except _PreconditionFailed as e:
            return self._fail(key, instance_id, e.error)

        try:
            handle = await self._dispatch(action, prepared)
        except GatewayError as e:
            return self._fail(key, instance_id, classify_error(e.raw))

        self._advance(key, instance_id, TransactionPhase.SUBMITTED, handle=handle)

        task = asyncio.ensure_future(self.gateway.wait_for_inclusion(handle))
        await asyncio.wait({task}, timeout=deadline)
        if not task.done():
            task.add_done_callback(
                functools.partial(self._discard_late_inclusion, key, instance_id)
            )
            return self._fail(
                key,
                instance_id,
                ClassifiedError(
                    kind=ErrorKind.TIMEOUT,
                    message=f"No confirmation after {deadline}s: {handle.explorer_url}",
                ),
            )

        try:
            inclusion = task.result()
        except GatewayError as e:
            return self._fail(key, instance_id, classify_error(e.raw))

        if not inclusion.success:
            return self._fail(
                key,
                instance_id,
                ClassifiedError(
                    kind=ErrorKind.REMOTE_CALL_FAILED,
                    message="Transaction failed",
                    raw=f"{handle.tx_hash} reverted in block {inclusion.block_number}",
                ),
            )

        outcome = await self._refresh(action, prepared, handle, inclusion)
        logger.info(f"[{key}] confirmed in block {inclusion.block_number}")
        return self._advance(
            key, instance_id, TransactionPhase.CONFIRMED, outcome=outcome
        )

    def _discard_late_inclusion(
        self, slot: str, instance_id: int, task: "asyncio.Future[InclusionResult]"
    ) -> None:
        if task.cancelled():
            return
        late_error = task.exception()
        logger.debug(
            f"[{slot}] ignoring late inclusion result for #{instance_id}"
            + (f" ({late_error})" if late_error else "")
        )

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _check_session(self) -> Dict[str, Any]:
        state = self.connection.state
        if not state.is_connected:
            if state.error is not None and state.error.kind == ErrorKind.NO_PROVIDER:
                raise _PreconditionFailed(state.error)
            raise _PreconditionFailed(
                ClassifiedError(
                    kind=ErrorKind.CONNECTION_REJECTED,
                    message="Wallet not connected",
                )
            )

        if not self.connection.network.supported:
            raise _PreconditionFailed(
                ClassifiedError(
                    kind=ErrorKind.UNSUPPORTED_NETWORK,
                    message=f"Please switch to a testnet ({supported_network_labels()})",
                )
            )
        return {"account": state.account}

    def _validate_inputs(
        self, action: ActionKind, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Local input checks, no I/O.

        Expected params:
            createCampaign: title, description, goal, milestones, image_ref (optional)
            donate: campaign_id, amount
            withdrawFunds / stopCampaign / deleteCampaign / adminDeleteCampaign: campaign_id
            changeAdmin: new_admin
        """
        try:
            if action == ActionKind.CREATE_CAMPAIGN:
                return {
                    "title": validate_non_empty(params.get("title"), "title"),
                    "description": validate_non_empty(
                        params.get("description"), "description"
                    ),
                    "image_ref": str(params.get("image_ref") or "").strip(),
                    "goal": validate_positive_amount(params.get("goal"), "goal"),
                    "milestones": parse_milestones(params.get("milestones")),
                }
            if action == ActionKind.CHANGE_ADMIN:
                return {
                    "new_admin": validate_eth_address(
                        params.get("new_admin"), "new_admin"
                    )
                }

            prepared = {"campaign_id": validate_campaign_id(params.get("campaign_id"))}
            if action == ActionKind.DONATE:
                prepared["amount"] = validate_positive_amount(
                    params.get("amount"), "amount", minimum=self.min_donation
                )
            return prepared
        except InputValidationError as e:
            raise _PreconditionFailed(ClassifiedError.validation(e.field, e.reason))

    async def _check_remote_preconditions(
        self,
        action: ActionKind,
        params: Mapping[str, Any],
        prepared: Dict[str, Any],
    ) -> None:
        account = prepared["account"]
        known: Optional[CampaignRecord] = params.get("campaign")

        try:
            if action == ActionKind.DONATE:
                campaign = known or await self.reader.load_campaign(
                    prepared["campaign_id"]
                )
                self._require_fundable(campaign)

            elif action.requires_owner and known is not None:
                # Local short-circuit only; the contract enforces ownership
                if not known.exists:
                    raise _PreconditionFailed(
                        ClassifiedError(
                            kind=ErrorKind.CAMPAIGN_NOT_FOUND,
                            message="Campaign does not exist",
                        )
                    )
                if not known.is_owned_by(account):
                    raise _PreconditionFailed(
                        ClassifiedError(
                            kind=ErrorKind.NOT_AUTHORIZED,
                            message="Only the campaign owner can do this",
                        )
                    )

            elif action == ActionKind.ADMIN_DELETE_CAMPAIGN:
                if not await self.reader.is_admin(account):
                    raise _PreconditionFailed(
                        ClassifiedError(
                            kind=ErrorKind.NOT_AUTHORIZED,
                            message="Only the admin can do this",
                        )
                    )
        except GatewayError as e:
            raise _PreconditionFailed(classify_error(e.raw))

    @staticmethod
    def _require_fundable(campaign: CampaignRecord) -> None:
        if not campaign.exists:
            raise _PreconditionFailed(
                ClassifiedError(
                    kind=ErrorKind.CAMPAIGN_NOT_FOUND,
                    message="Campaign does not exist",
                )
            )
        if not campaign.is_active:
            raise _PreconditionFailed(
                ClassifiedError(
                    kind=ErrorKind.CAMPAIGN_INACTIVE,
                    message="This campaign is no longer active",
                )
            )

    # ------------------------------------------------------------------
    # Dispatch and refresh
    # ------------------------------------------------------------------

    async def _dispatch(
        self, action: ActionKind, prepared: Dict[str, Any]
    ) -> TransactionHandle:
        gateway = self.gateway
        if action == ActionKind.CREATE_CAMPAIGN:
            return await gateway.create_campaign(
                prepared["title"],
                prepared["description"],
                prepared["image_ref"],
                prepared["goal"],
                prepared["milestones"],
            )
        if action == ActionKind.DONATE:
            return await gateway.donate(prepared["campaign_id"], prepared["amount"])
        if action == ActionKind.CHANGE_ADMIN:
            return await gateway.change_admin(prepared["new_admin"])

        by_campaign = {
            ActionKind.WITHDRAW_FUNDS: gateway.withdraw_funds,
            ActionKind.STOP_CAMPAIGN: gateway.stop_campaign,
            ActionKind.DELETE_CAMPAIGN: gateway.delete_campaign,
            ActionKind.ADMIN_DELETE_CAMPAIGN: gateway.admin_delete_campaign,
        }
        return await by_campaign[action](prepared["campaign_id"])

    async def _refresh(
        self,
        action: ActionKind,
        prepared: Dict[str, Any],
        handle: TransactionHandle,
        inclusion: InclusionResult,
    ) -> TransactionOutcome:
        """Re-read what the action changed; failures only cost freshness."""
        try:
            if action.targets_campaign:
                campaign = await self.reader.load_campaign(prepared["campaign_id"])
                return TransactionOutcome(
                    action=action,
                    handle=handle,
                    inclusion=inclusion,
                    refreshed=True,
                    campaign=campaign,
                )
            if action == ActionKind.CREATE_CAMPAIGN:
                campaigns = await self.reader.load_for_account(prepared["account"])
                return TransactionOutcome(
                    action=action,
                    handle=handle,
                    inclusion=inclusion,
                    refreshed=True,
                    campaigns=campaigns,
                )
            admin = await self.gateway.get_admin()
            return TransactionOutcome(
                action=action,
                handle=handle,
                inclusion=inclusion,
                refreshed=True,
                admin=admin,
            )
        except (GatewayError, CampaignLoadError) as e:
            logger.warning(
                f"{action.value} confirmed ({handle.tx_hash}) but refresh failed: {e}"
            )
            return TransactionOutcome(action=action, handle=handle, inclusion=inclusion)
