"""
Input Validation - Sanitization of auction inputs.

Provides validation for all external inputs to prevent:
- Integer overflows (amounts beyond what a host ledger can hold)
- Invalid identity formats
- Nonsensical auction terms (zero-length windows, negative prices)
"""

from typing import Any, Tuple

from dae.crypto import ADDRESS_SIZE

# =============================================================================
# Constants
# =============================================================================

# Field bounds (uint256, as on the EVM)
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MIN_TIME = 0
MAX_TIME = 2**64 - 1
MAX_DURATION = 2**32 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass; True is not a price
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount", max_val: int = MAX_AMOUNT) -> Tuple[bool, str]:
    """Validate a token/value amount."""
    return validate_integer(amount, name, MIN_AMOUNT, max_val)


def validate_time_unit(value: Any, name: str = "time") -> Tuple[bool, str]:
    """Validate a block height / time unit."""
    return validate_integer(value, name, MIN_TIME, MAX_TIME)


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte participant address."""
    if not isinstance(address, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(address).__name__}"

    if len(address) != ADDRESS_SIZE:
        return False, f"{name} must be {ADDRESS_SIZE} bytes, got {len(address)}"

    return True, ""


# =============================================================================
# Composite Validators
# =============================================================================


def validate_auction_terms(
    reserve_price: Any,
    auction_duration_units: Any,
    price_decrement_per_unit: Any,
) -> Tuple[bool, str]:
    """
    Validate the seller-chosen terms of a Dutch auction.

    The derived initial price must also fit in MAX_AMOUNT.
    """
    valid, err = validate_amount(reserve_price, "reserve_price")
    if not valid:
        return False, err

    valid, err = validate_integer(auction_duration_units, "auction_duration_units", 1, MAX_DURATION)
    if not valid:
        return False, err

    valid, err = validate_amount(price_decrement_per_unit, "price_decrement_per_unit")
    if not valid:
        return False, err

    initial_price = reserve_price + auction_duration_units * price_decrement_per_unit
    if initial_price > MAX_AMOUNT:
        return False, f"initial price {initial_price} exceeds max amount {MAX_AMOUNT}"

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_amount",
    "validate_time_unit",
    "validate_address",
    "validate_auction_terms",
    "MIN_AMOUNT",
    "MAX_AMOUNT",
    "MAX_DURATION",
]
