"""
Connection Manager - single owner of the wallet connection state.

States:
- DISCONNECTED: no session
- CONNECTING: handshake with the provider in progress
- CONNECTED: account and chain id known
- ERROR: last handshake failed (message kept for display)

Provider notifications (account or chain changes) are routed through
``notify_provider_change`` so dependents only ever observe
``ConnectionState`` values, delivered to subscribers on every change.
No public method raises: provider failures end up in the ERROR state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from web3fund_toolkit.shared.errors import ClassifiedError, ErrorKind
from web3fund_toolkit.shared.exceptions import (
    NoProviderException,
    UserRejectedException,
)
from web3fund_toolkit.shared.logging import get_logger
from web3fund_toolkit.shared.network import NetworkStatus, classify_network
from web3fund_toolkit.wallet.provider import WalletProvider

logger = get_logger(__name__)


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


_TRANSITIONS: Dict[ConnectionStatus, FrozenSet[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: frozenset(
        {ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED}
    ),
    ConnectionStatus.CONNECTING: frozenset(
        {
            ConnectionStatus.CONNECTED,
            ConnectionStatus.ERROR,
            ConnectionStatus.DISCONNECTED,
        }
    ),
    ConnectionStatus.CONNECTED: frozenset(
        {
            ConnectionStatus.CONNECTED,
            ConnectionStatus.CONNECTING,
            ConnectionStatus.DISCONNECTED,
        }
    ),
    ConnectionStatus.ERROR: frozenset(
        {ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED}
    ),
}


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of the wallet connection."""

    status: ConnectionStatus
    account: Optional[str] = None
    chain_id: Optional[int] = None
    error: Optional[ClassifiedError] = None

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls(status=ConnectionStatus.DISCONNECTED)

    @classmethod
    def connecting(cls) -> "ConnectionState":
        return cls(status=ConnectionStatus.CONNECTING)

    @classmethod
    def connected(cls, account: str, chain_id: Optional[int]) -> "ConnectionState":
        return cls(
            status=ConnectionStatus.CONNECTED,
            account=account,
            chain_id=chain_id,
        )

    @classmethod
    def failed(cls, error: ClassifiedError) -> "ConnectionState":
        return cls(status=ConnectionStatus.ERROR, error=error)

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None


Listener = Callable[[ConnectionState], None]


class ConnectionManager:
    """Drives the wallet connection state machine over a ``WalletProvider``."""

    def __init__(self, provider: Optional[WalletProvider]):
        self.provider = provider
        self._state = ConnectionState.disconnected()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def account(self) -> Optional[str]:
        return self._state.account

    @property
    def chain_id(self) -> Optional[int]:
        return self._state.chain_id

    @property
    def network(self) -> NetworkStatus:
        return classify_network(self._state.chain_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, new_state: ConnectionState) -> None:
        allowed = _TRANSITIONS[self._state.status]
        if new_state.status not in allowed:
            raise ValueError(
                f"Illegal connection transition "
                f"{self._state.status.value} -> {new_state.status.value}"
            )
        logger.debug(
            f"Connection {self._state.status.value} -> {new_state.status.value}"
        )
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Connection listener failed")

    async def connect(self) -> ConnectionState:
        """
        Perform the provider handshake.

        Returns the resulting state: CONNECTED on success, ERROR otherwise.
        A call made while a handshake is already running returns the
        CONNECTING state unchanged.
        """
        if self._state.status == ConnectionStatus.CONNECTING:
            return self._state

        if self.provider is None:
            self._set_state(ConnectionState.connecting())
            self._set_state(
                ConnectionState.failed(
                    ClassifiedError(
                        kind=ErrorKind.NO_PROVIDER,
                        message="Please install MetaMask or another Web3 wallet",
                    )
                )
            )
            return self._state

        attempt = ConnectionState.connecting()
        self._set_state(attempt)
        try:
            await self.provider.activate()
            account = self.provider.account
            if not account:
                raise UserRejectedException("No account was authorized")
            if self._is_superseded(attempt):
                return self._state
            self._set_state(
                ConnectionState.connected(account, self.provider.chain_id)
            )
        except NoProviderException as e:
            logger.error(f"Connection error: {e}")
            if self._is_superseded(attempt):
                return self._state
            self._set_state(
                ConnectionState.failed(
                    ClassifiedError(kind=ErrorKind.NO_PROVIDER, message=str(e))
                )
            )
        except Exception as e:
            # User rejection, unreachable endpoint, provider bug: all end the handshake
            logger.error(f"Connection error: {e}")
            if self._is_superseded(attempt):
                return self._state
            self._set_state(
                ConnectionState.failed(
                    ClassifiedError(
                        kind=ErrorKind.CONNECTION_REJECTED,
                        message=str(e) or "Connection failed",
                        raw=str(e),
                    )
                )
            )
        return self._state

    def _is_superseded(self, attempt: ConnectionState) -> bool:
        # True when a disconnect replaced the CONNECTING state this attempt set
        if self._state is attempt:
            return False
        logger.debug(
            "Dropping stale handshake result, state is now "
            f"{self._state.status.value}"
        )
        return True

    async def disconnect(self) -> ConnectionState:
        """Tear down the session; always ends in DISCONNECTED."""
        if self.provider is not None:
            deactivate = getattr(self.provider, "deactivate", None)
            try:
                if deactivate is not None:
                    await deactivate()
                else:
                    await self.provider.reset_state()
            except Exception as e:
                logger.error(f"Disconnection error: {e}")

        self._set_state(ConnectionState.disconnected())
        return self._state

    def notify_provider_change(
        self, account: Optional[str], chain_id: Optional[int]
    ) -> ConnectionState:
        """
        Apply an account or chain change reported by the provider.

        Ignored unless connected. A missing account means the wallet
        revoked access, which ends the session.
        """
        if not self._state.is_connected:
            return self._state
        if not account:
            self._set_state(ConnectionState.disconnected())
        else:
            self._set_state(ConnectionState.connected(account, chain_id))
        return self._state

    async def switch_network(self, chain_id: int) -> bool:
        """
        Ask the provider to switch to ``chain_id``.

        Returns True if the provider now reports that chain. Failures are
        logged and leave the connection untouched.
        """
        if not self._state.is_connected or self.provider is None:
            return False

        try:
            await self.provider.send(
                "wallet_switchEthereumChain", [{"chainId": hex(chain_id)}]
            )
            refresh = getattr(self.provider, "refresh_chain_id", None)
            new_chain_id = (
                await refresh() if refresh is not None else chain_id
            )
        except Exception as e:
            logger.error(f"Error switching network: {e}")
            return False

        self.notify_provider_change(self._state.account, new_chain_id)
        return new_chain_id == chain_id
