"""
Wallet provider capability interface and a key-backed implementation.

A provider knows how to perform the connection handshake, expose a signer
and forward raw JSON-RPC requests. ``ConnectionManager`` is the only
component that talks to a provider directly.
"""

import asyncio
from typing import Any, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from web3fund_toolkit.shared.constants import GlobalConstants
from web3fund_toolkit.shared.exceptions import (
    NoProviderException,
    UserRejectedException,
    WalletProviderException,
)
from web3fund_toolkit.shared.logging import get_logger

logger = get_logger(__name__)


class WalletProvider:
    """
    Capability interface of a wallet provider.

    Subclasses implement ``activate``, ``reset_state``, ``get_signer`` and
    ``send``. A provider may also define ``deactivate`` for an explicit
    teardown; callers fall back to ``reset_state`` when it is absent.
    """

    w3: Optional[Web3] = None

    async def activate(self) -> None:
        raise NotImplementedError

    async def reset_state(self) -> None:
        raise NotImplementedError

    def get_signer(self) -> Any:
        raise NotImplementedError

    async def send(self, method: str, params: List[Any]) -> Any:
        raise NotImplementedError

    @property
    def account(self) -> Optional[str]:
        raise NotImplementedError

    @property
    def chain_id(self) -> Optional[int]:
        raise NotImplementedError


class KeyWalletProvider(WalletProvider):
    """
    Provider backed by a JSON-RPC endpoint and a local private key.

    Args:
        rpc_url: JSON-RPC endpoint (defaults to WEB3FUND_RPC_URL)
        private_key: Hex private key (defaults to WEB3FUND_PRIVATE_KEY)
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
    ):
        self.rpc_url = rpc_url or GlobalConstants.RPC_URL
        self._private_key = private_key or GlobalConstants.PRIVATE_KEY
        self.w3: Optional[Web3] = None
        self._signer: Optional[LocalAccount] = None
        self._chain_id: Optional[int] = None

    @property
    def account(self) -> Optional[str]:
        return self._signer.address if self._signer else None

    @property
    def chain_id(self) -> Optional[int]:
        return self._chain_id

    async def activate(self) -> None:
        """Connect to the RPC endpoint and load the signing key."""
        if not self.rpc_url or not self._private_key:
            raise NoProviderException(
                "No wallet provider configured: set WEB3FUND_RPC_URL and "
                "WEB3FUND_PRIVATE_KEY"
            )

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._activate_sync)
        logger.info(
            f"Wallet {self.account} connected on chain {self._chain_id}"
        )

    def _activate_sync(self) -> None:
        try:
            signer = Account.from_key(self._private_key)
        except (ValueError, TypeError) as e:
            raise UserRejectedException(f"Invalid private key: {e}")

        w3 = Web3(Web3.HTTPProvider(self.rpc_url))
        if not w3.is_connected():
            raise WalletProviderException(
                f"Could not reach RPC endpoint {self.rpc_url}"
            )

        chain_id = w3.eth.chain_id
        # POA chains (BNB, Polygon testnets) carry extra data in headers
        if chain_id != 1:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        self.w3 = w3
        self._signer = signer
        self._chain_id = chain_id

    async def deactivate(self) -> None:
        await self.reset_state()

    async def reset_state(self) -> None:
        self.w3 = None
        self._signer = None
        self._chain_id = None

    def get_signer(self) -> LocalAccount:
        if self._signer is None:
            raise WalletProviderException("Wallet is not connected")
        return self._signer

    async def refresh_chain_id(self) -> Optional[int]:
        """Re-read the active chain id from the endpoint."""
        if self.w3 is None:
            return None
        loop = asyncio.get_running_loop()
        self._chain_id = await loop.run_in_executor(
            None, lambda: self.w3.eth.chain_id
        )
        return self._chain_id

    async def send(self, method: str, params: List[Any]) -> Any:
        """Forward a raw JSON-RPC request to the endpoint."""
        if self.w3 is None:
            raise WalletProviderException("Wallet is not connected")

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None, self.w3.provider.make_request, method, params
        )
        error = response.get("error")
        if error:
            message = (
                error.get("message", str(error))
                if isinstance(error, dict)
                else str(error)
            )
            if isinstance(error, dict) and error.get("code") == 4001:
                raise UserRejectedException(message)
            raise WalletProviderException(message)
        return response.get("result")
