"""
Exact conversion between the ledger's base unit (wei) and decimal ether.

Monetary magnitudes never pass through float. Parsing goes through
``Decimal`` and the scaling is delegated to ``eth_utils`` which works on
integers and decimals only.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from eth_utils import from_wei, to_wei

from web3fund_toolkit.shared.constants import CampaignConstants

_UNIT = "ether"


def parse_decimal(value: Union[str, int, Decimal]) -> Decimal:
    """Parse user input into a finite Decimal.

    Raises:
        ValueError: if the value is empty, not a number, not finite or has
            more fractional digits than the base unit can represent.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if not text:
            raise ValueError("amount is empty")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"{text!r} is not a number")

    if not amount.is_finite():
        raise ValueError(f"{value!r} is not a finite number")

    exponent = amount.as_tuple().exponent
    if exponent < -CampaignConstants.BASE_UNIT_DECIMALS:
        # Trailing zeros beyond 18 places are harmless
        normalized = amount.normalize()
        if normalized.as_tuple().exponent < -CampaignConstants.BASE_UNIT_DECIMALS:
            raise ValueError(
                f"{value!r} has more than "
                f"{CampaignConstants.BASE_UNIT_DECIMALS} decimal places"
            )
    return amount


def to_base_units(value: Union[str, int, Decimal]) -> int:
    """Convert a decimal ether amount ("2.5") to wei (2500000000000000000)."""
    return int(to_wei(parse_decimal(value), _UNIT))


def from_base_units(value: int) -> Decimal:
    """Convert wei to a Decimal ether amount without rounding."""
    return Decimal(from_wei(int(value), _UNIT))


def format_base_units(value: int) -> str:
    """Convert wei to a plain decimal string ("2.5", "10", "0")."""
    return decimal_to_str(from_base_units(value))


def decimal_to_str(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")
