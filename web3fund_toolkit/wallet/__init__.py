from .connection import ConnectionManager, ConnectionState, ConnectionStatus
from .provider import KeyWalletProvider, WalletProvider

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "KeyWalletProvider",
    "WalletProvider",
]
