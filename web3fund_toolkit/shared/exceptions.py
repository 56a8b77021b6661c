"""
Exception hierarchy for the Web3Fund toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on a fresh attempt (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from another attempt (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Nothing in the toolkit re-submits a mutating call on its own. "Retryable"
only tells the caller that a user-initiated re-submission may succeed.
"""

from typing import Optional


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on another attempt.

    Use for transient failures like:
    - RPC timeouts
    - Dropped transactions
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from another attempt.

    Use for permanent failures like:
    - Invalid input data
    - Missing required data
    - Programming errors in the caller
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values
    - Missing required resources (ABI file)
    """

    pass


class GatewayError(RetryableException):
    """
    Any failure of a call through the contract gateway.

    ``raw`` keeps the remote failure text untouched; interpretation is done
    by ``web3fund_toolkit.shared.errors.classify_error``.
    """

    def __init__(self, raw: str, cause: Optional[BaseException] = None):
        super().__init__(raw)
        self.raw = raw
        self.cause = cause


class CampaignLoadError(NonRetryableException):
    """Raised when a listing cannot start (campaign count or id list failed)."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class WalletProviderException(Exception):
    """Base class for wallet provider failures."""

    pass


class NoProviderException(WalletProviderException):
    """No wallet provider is available in this environment."""

    pass


class UserRejectedException(WalletProviderException):
    """The user (or the wallet) declined the request."""

    pass


class ActionInProgressException(NonRetryableException):
    """A submission was attempted on an action slot that is still in flight."""

    pass
