"""Address and amount validation utilities."""

from eth_utils import is_address, is_checksum_address, to_checksum_address

from accrual.models.types import MAX_AMOUNT


def validate_address(address: str, checksum: bool = False) -> bool:
    """
    Validate EVM account address.

    Args:
        address: Account address
        checksum: Whether to require a valid EIP-55 checksum

    Returns:
        True if valid
    """
    if not address or not isinstance(address, str):
        return False

    # Basic format check
    if not address.startswith("0x") or len(address) != 42:
        return False

    if checksum:
        return is_checksum_address(address)

    # Lowercase skips the mixed-case checksum rule
    return is_address(address.lower())


def normalize_address(address: str) -> str:
    """
    Normalize address to checksum format.

    Args:
        address: Account address

    Returns:
        Checksummed address

    Raises:
        ValueError: If invalid address
    """
    if not validate_address(address):
        raise ValueError(f"Invalid address: {address}")

    return to_checksum_address(address)


def validate_amount(amount: int) -> bool:
    """
    Validate token amount in smallest units.

    Args:
        amount: Amount to validate

    Returns:
        True if a positive integer that fits in 256 bits
    """
    if not isinstance(amount, int) or isinstance(amount, bool):
        return False
    return 0 < amount <= MAX_AMOUNT


def to_units(amount: str | int, decimals: int) -> int:
    """
    Convert a human-readable amount ("100.5") to smallest units.

    Raises:
        ValueError: If the amount has more fractional digits than decimals
    """
    text = str(amount).strip()
    if text.startswith("-"):
        raise ValueError(f"Amount must not be negative: {amount}")
    whole, _, fraction = text.partition(".")
    if len(fraction) > decimals:
        raise ValueError(
            f"Amount {amount} has more than {decimals} decimal places"
        )
    return int(whole or "0") * 10**decimals + int(fraction.ljust(decimals, "0") or "0")


def from_units(units: int, decimals: int) -> str:
    """Format smallest units as a human-readable amount."""
    sign = "-" if units < 0 else ""
    whole, fraction = divmod(abs(units), 10**decimals)
    if not decimals:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{fraction:0{decimals}d}"
