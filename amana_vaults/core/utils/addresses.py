from __future__ import annotations

from typing import Any

from eth_utils import is_address, to_checksum_address

from amana_vaults.core.constants.base import ZERO_ADDRESS
from amana_vaults.core.errors import InvalidAddressError


def normalize_address(value: Any, *, allow_zero: bool = False, field: str = "address") -> str:
    """Checksum ``value`` or raise ``InvalidAddressError``.

    Contracts are accepted as well and resolve to their ``address``.
    """
    if value is None:
        raise InvalidAddressError(f"{field} is required")
    raw = getattr(value, "address", value)
    if not isinstance(raw, str) or not is_address(raw):
        raise InvalidAddressError(f"invalid {field}: {raw!r}")
    checksummed = to_checksum_address(raw)
    if not allow_zero and checksummed == ZERO_ADDRESS:
        raise InvalidAddressError(f"{field} must not be the zero address")
    return checksummed


def same_address(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return str(a).lower() == str(b).lower()
