"""Web3Fund Toolkit - Python client for Web3Fund crowdfunding campaigns."""

__version__ = "1.0.0"

from .campaigns import CampaignRecord, CampaignService
from .contracts import ContractGateway
from .transactions import ActionKind
from .transactions.orchestrator import TransactionOrchestrator
from .wallet import ConnectionManager, KeyWalletProvider

__all__ = [
    "ActionKind",
    "CampaignRecord",
    "CampaignService",
    "ConnectionManager",
    "ContractGateway",
    "KeyWalletProvider",
    "TransactionOrchestrator",
]
