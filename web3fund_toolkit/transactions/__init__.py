"""Transaction lifecycle module for the Web3Fund toolkit.

The orchestrator lives in ``transactions.orchestrator``; it is not imported
here because the contract gateway depends on these models.
"""

from .models import (
    ActionKind,
    InclusionResult,
    TransactionHandle,
    TransactionOutcome,
    TransactionPhase,
    TransactionState,
)

__all__ = [
    "ActionKind",
    "InclusionResult",
    "TransactionHandle",
    "TransactionOutcome",
    "TransactionPhase",
    "TransactionState",
]
