"""Account address normalization."""

from __future__ import annotations

from eth_utils import is_address, to_checksum_address

from cardbattle.domain.errors import InvalidAddress

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: str, *, field: str = "address") -> str:
    """Return ``value`` in EIP-55 checksum form.

    Args:
        value: Hex-encoded 20-byte account address, any casing
        field: Name used in the error message

    Returns:
        str: The checksummed address

    Raises:
        InvalidAddress: If ``value`` is not a 20-byte hex address
    """
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddress(f"{field} is not a valid address: {value!r}")
    return to_checksum_address(value)


def is_zero_address(value: str) -> bool:
    return int(value, 16) == 0
