"""
Error classification for remote and local failures.

Every failure that reaches a caller is expressed as a ``ClassifiedError``
whose ``kind`` belongs to the closed ``ErrorKind`` set. Remote failures
arrive as raw text (revert reasons, RPC error messages, wallet codes) and
are mapped through a single ordered pattern table; the first match wins.
Unrecognized text falls back to ``REMOTE_CALL_FAILED`` with the raw text
preserved for display.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ErrorKind(Enum):
    """Closed set of user-facing error kinds."""

    NO_PROVIDER = "no_provider"
    CONNECTION_REJECTED = "connection_rejected"
    UNSUPPORTED_NETWORK = "unsupported_network"
    VALIDATION_FAILED = "validation_failed"
    NOT_AUTHORIZED = "not_authorized"
    CAMPAIGN_NOT_FOUND = "campaign_not_found"
    CAMPAIGN_INACTIVE = "campaign_inactive"
    REMOTE_CALL_FAILED = "remote_call_failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ClassifiedError:
    """
    A failure ready for display.

    Attributes:
        kind: Error category
        message: Human readable description
        field: Input field at fault (VALIDATION_FAILED only)
        reason: Why the field was rejected (VALIDATION_FAILED only)
        raw: Original remote failure text, if any
    """

    kind: ErrorKind
    message: str
    field: Optional[str] = None
    reason: Optional[str] = None
    raw: Optional[str] = None

    @classmethod
    def validation(cls, field: str, reason: str) -> "ClassifiedError":
        return cls(
            kind=ErrorKind.VALIDATION_FAILED,
            message=reason,
            field=field,
            reason=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "field": self.field,
            "reason": self.reason,
            "raw": self.raw,
        }


# (substring, kind, message, field) - matched case-insensitively, in order.
# Specific revert reasons come before the generic wallet/RPC phrases.
_PATTERNS: List[Tuple[str, ErrorKind, str, Optional[str]]] = [
    ("invalid campaign id", ErrorKind.CAMPAIGN_NOT_FOUND, "Invalid campaign ID", None),
    ("campaign does not exist", ErrorKind.CAMPAIGN_NOT_FOUND, "Campaign does not exist", None),
    ("campaign is not active", ErrorKind.CAMPAIGN_INACTIVE, "This campaign is no longer active", None),
    ("campaign not active", ErrorKind.CAMPAIGN_INACTIVE, "This campaign is no longer active", None),
    (
        "donation amount must be positive",
        ErrorKind.VALIDATION_FAILED,
        "Donation amount must be greater than 0",
        "amount",
    ),
    (
        "no funds to withdraw",
        ErrorKind.VALIDATION_FAILED,
        "No funds available to withdraw",
        "campaign",
    ),
    ("onlycampaignowner", ErrorKind.NOT_AUTHORIZED, "Only the campaign owner can do this", None),
    ("only campaign owner", ErrorKind.NOT_AUTHORIZED, "Only the campaign owner can do this", None),
    ("not campaign owner", ErrorKind.NOT_AUTHORIZED, "Only the campaign owner can do this", None),
    ("onlyadmin", ErrorKind.NOT_AUTHORIZED, "Only the admin can do this", None),
    ("only admin", ErrorKind.NOT_AUTHORIZED, "Only the admin can do this", None),
    ("not authorized", ErrorKind.NOT_AUTHORIZED, "You are not authorized to do this", None),
    ("unauthorized", ErrorKind.NOT_AUTHORIZED, "You are not authorized to do this", None),
    ("failed to send ether", ErrorKind.REMOTE_CALL_FAILED, "Transfer failed. Please try again.", None),
    ("user rejected", ErrorKind.CONNECTION_REJECTED, "Request rejected in wallet", None),
    ("user denied", ErrorKind.CONNECTION_REJECTED, "Request rejected in wallet", None),
    ("action_rejected", ErrorKind.CONNECTION_REJECTED, "Request rejected in wallet", None),
    ("no ethereum provider", ErrorKind.NO_PROVIDER, "Please install MetaMask or another Web3 wallet", None),
    ("no wallet provider", ErrorKind.NO_PROVIDER, "Please install MetaMask or another Web3 wallet", None),
    ("unsupported network", ErrorKind.UNSUPPORTED_NETWORK, "Unsupported network", None),
    ("timed out", ErrorKind.TIMEOUT, "Timed out waiting for the transaction", None),
    ("timeout", ErrorKind.TIMEOUT, "Timed out waiting for the transaction", None),
]

# EIP-1193 provider error codes
_CODES: Dict[int, Tuple[ErrorKind, str]] = {
    4001: (ErrorKind.CONNECTION_REJECTED, "Request rejected in wallet"),
    4100: (ErrorKind.NOT_AUTHORIZED, "The wallet has not authorized this account"),
    4900: (ErrorKind.CONNECTION_REJECTED, "Wallet is disconnected"),
    4901: (ErrorKind.UNSUPPORTED_NETWORK, "Wallet is not connected to the requested chain"),
}


def _extract_code(raw: Any) -> Optional[int]:
    code = getattr(raw, "code", None)
    if code is None and isinstance(raw, dict):
        code = raw.get("code")
    if code is None and isinstance(getattr(raw, "args", None), tuple):
        for arg in raw.args:
            if isinstance(arg, dict) and "code" in arg:
                code = arg["code"]
                break
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def _extract_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    text = getattr(raw, "raw", None)
    if isinstance(text, str):
        return text
    if isinstance(raw, dict):
        return str(raw.get("message", raw))
    try:
        return str(raw)
    except Exception:
        return repr(raw)


def classify_error(raw: Union[str, BaseException, Dict[str, Any], None]) -> ClassifiedError:
    """
    Map a raw failure to a ``ClassifiedError``.

    Accepts the raw message, an exception (``GatewayError`` or anything with
    an EIP-1193 ``code``) or a JSON-RPC error dict. Never raises.

    Example:
        >>> classify_error("execution reverted: Campaign is not active").kind
        <ErrorKind.CAMPAIGN_INACTIVE: 'campaign_inactive'>
    """
    text = _extract_text(raw)
    code = _extract_code(raw)

    if code in _CODES:
        kind, message = _CODES[code]
        return ClassifiedError(kind=kind, message=message, raw=text)

    lowered = text.lower()
    for needle, kind, message, field in _PATTERNS:
        if needle in lowered:
            return ClassifiedError(
                kind=kind,
                message=message,
                field=field,
                reason=message if field else None,
                raw=text,
            )

    return ClassifiedError(
        kind=ErrorKind.REMOTE_CALL_FAILED,
        message=text or "Remote call failed",
        raw=text,
    )
