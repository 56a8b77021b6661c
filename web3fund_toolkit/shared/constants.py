"""All constants for the project"""

import os
from decimal import Decimal

from dotenv import load_dotenv

from web3fund_toolkit.shared.exceptions import ConfigurationException

load_dotenv()


class NetworkConstants:
    """Supported networks and their block explorers"""

    # Networks the crowdfunding contract is deployed on
    SUPPORTED_NETWORKS = {
        5: "Goerli",
        11155111: "Sepolia",
        80001: "Mumbai",
        421613: "Arbitrum Goerli",
        97: "BNB Testnet",
    }

    # Names for well-known chains the wallet may report (display only)
    KNOWN_NETWORK_NAMES = {
        1: "Ethereum Mainnet",
        5: "Goerli Testnet",
        137: "Polygon Mainnet",
        80001: "Mumbai Testnet",
    }

    EXPLORERS = {
        1: "https://etherscan.io",
        5: "https://goerli.etherscan.io",
        11155111: "https://sepolia.etherscan.io",
        80001: "https://mumbai.polygonscan.com",
        421613: "https://goerli.arbiscan.io",
        97: "https://testnet.bscscan.com",
    }

    DEFAULT_EXPLORER = "https://etherscan.io"


class CampaignConstants:
    """Campaign reading and transaction constants"""

    BATCH_SIZE = 5
    BASE_UNIT_DECIMALS = 18
    CREATE_CAMPAIGN_GAS_LIMIT = 1_000_000

    MIN_DONATION = Decimal(os.getenv("WEB3FUND_MIN_DONATION", "0.0001"))
    TX_TIMEOUT = float(os.getenv("WEB3FUND_TX_TIMEOUT", "120"))

    ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ContentConstants:
    """Content store (IPFS) constants"""

    GATEWAY_TEMPLATE = os.getenv(
        "WEB3FUND_IPFS_GATEWAY", "https://ipfs.io/ipfs/{ref}"
    )
    PLACEHOLDER_IMAGE = "https://placehold.co/600x400?text=Web3Fund"


class GlobalConstants:
    """Environment driven settings"""

    RPC_URL = os.getenv("WEB3FUND_RPC_URL")
    PRIVATE_KEY = os.getenv("WEB3FUND_PRIVATE_KEY")
    CONTRACT_ADDRESS = os.getenv("WEB3FUND_CONTRACT_ADDRESS")

    @classmethod
    def get_contract_address(cls) -> str:
        if not cls.CONTRACT_ADDRESS:
            raise ConfigurationException(
                "WEB3FUND_CONTRACT_ADDRESS is not set"
            )
        return cls.CONTRACT_ADDRESS

    @classmethod
    def get_rpc_url(cls) -> str:
        if not cls.RPC_URL:
            raise ConfigurationException("WEB3FUND_RPC_URL is not set")
        return cls.RPC_URL
