from decimal import Decimal
from typing import List, Optional, Sequence, Union

from eth_utils import is_address, to_checksum_address

from web3fund_toolkit.shared.units import parse_decimal, to_base_units


class InputValidationError(ValueError):
    """ValueError that remembers which input field was rejected."""

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise InputValidationError(
            param_name,
            f"Invalid {param_name}: address must be a non-empty string",
        )
    if not is_address(address.strip()):
        raise InputValidationError(
            param_name,
            f"Invalid {param_name}: {address} is not a valid Ethereum address",
        )
    return to_checksum_address(address.strip())


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive account comparison (no checksum validation)."""
    return bool(a) and bool(b) and a.lower() == b.lower()


def validate_non_empty(value: Optional[str], param_name: str) -> str:
    if value is None or not str(value).strip():
        raise InputValidationError(param_name, f"{param_name.capitalize()} is required")
    return str(value).strip()


def validate_positive_amount(
    value: Union[str, Decimal, None],
    param_name: str = "amount",
    minimum: Optional[Decimal] = None,
) -> Decimal:
    """Parse a decimal ether amount that must be > 0 (and >= minimum if given)."""
    if value is None:
        raise InputValidationError(param_name, f"Please enter a valid {param_name}")
    try:
        amount = parse_decimal(value)
    except ValueError:
        raise InputValidationError(param_name, f"Please enter a valid {param_name}")

    if amount <= 0:
        raise InputValidationError(
            param_name, f"{param_name.capitalize()} must be greater than 0"
        )
    if minimum is not None and amount < minimum:
        raise InputValidationError(
            param_name,
            f"{param_name.capitalize()} must be at least {minimum}",
        )
    try:
        to_base_units(amount)
    except ValueError:
        raise InputValidationError(
            param_name, f"{param_name.capitalize()} is too large"
        )
    return amount


MILESTONES_REASON = "Milestones must be positive numbers separated by commas"


def parse_milestones(value: Union[str, Sequence[Union[str, Decimal]], None]) -> List[Decimal]:
    """
    Parse "2, 5, 10" (or a list) into positive Decimals, keeping the order.

    Any bad entry rejects the whole list.
    """
    if value is None:
        raise InputValidationError("milestones", MILESTONES_REASON)
    entries = value.split(",") if isinstance(value, str) else list(value)
    if not entries:
        raise InputValidationError("milestones", MILESTONES_REASON)

    milestones = []
    for entry in entries:
        text = str(entry).strip()
        try:
            amount = parse_decimal(text)
        except ValueError:
            raise InputValidationError("milestones", MILESTONES_REASON)
        try:
            to_base_units(amount)
        except ValueError:
            raise InputValidationError("milestones", MILESTONES_REASON)
        if amount <= 0:
            raise InputValidationError("milestones", MILESTONES_REASON)
        milestones.append(amount)
    return milestones


def validate_campaign_id(value: Union[int, str, None]) -> int:
    try:
        campaign_id = int(str(value).strip())
    except (TypeError, ValueError):
        raise InputValidationError("campaign_id", f"Invalid campaign ID: {value}")
    if campaign_id < 0:
        raise InputValidationError("campaign_id", f"Invalid campaign ID: {value}")
    return campaign_id
