"""
Network policy: which chains the crowdfunding contract can be used on.

Pure lookups over the static allow-list in ``NetworkConstants``; no I/O.
"""

from dataclasses import dataclass
from typing import Optional

from web3fund_toolkit.shared.constants import NetworkConstants


@dataclass(frozen=True)
class NetworkStatus:
    """Result of classifying a chain id."""

    chain_id: Optional[int]
    supported: bool
    label: str


def classify_network(chain_id: Optional[int]) -> NetworkStatus:
    """
    Classify a chain id against the supported-network allow-list.

    Args:
        chain_id: Active chain id reported by the wallet, or None if unknown

    Returns:
        NetworkStatus with ``supported`` and a display label. Unsupported
        networks keep a descriptive label so it can still be shown.
    """
    if chain_id is None:
        return NetworkStatus(
            chain_id=None, supported=False, label="Network not detected"
        )

    label = NetworkConstants.SUPPORTED_NETWORKS.get(chain_id)
    if label is not None:
        return NetworkStatus(chain_id=chain_id, supported=True, label=label)

    return NetworkStatus(
        chain_id=chain_id, supported=False, label="Unsupported Network"
    )


def is_supported(chain_id: Optional[int]) -> bool:
    return classify_network(chain_id).supported


def get_network_name(chain_id: Optional[int]) -> str:
    """Human readable name for any chain id (supported or not)."""
    if chain_id is None:
        return "Network not detected"
    if chain_id in NetworkConstants.SUPPORTED_NETWORKS:
        return NetworkConstants.SUPPORTED_NETWORKS[chain_id]
    return NetworkConstants.KNOWN_NETWORK_NAMES.get(
        chain_id, f"Chain ID: {chain_id}"
    )


def supported_network_labels() -> str:
    return ", ".join(NetworkConstants.SUPPORTED_NETWORKS.values())


def get_explorer_tx_url(chain_id: Optional[int], tx_hash: str) -> str:
    """Block explorer link for a submitted transaction."""
    base = NetworkConstants.EXPLORERS.get(
        chain_id, NetworkConstants.DEFAULT_EXPLORER
    )
    if not tx_hash.startswith("0x"):
        tx_hash = "0x" + tx_hash
    return f"{base}/tx/{tx_hash}"
