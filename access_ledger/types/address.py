from __future__ import annotations

import re
from typing import Any, NewType

from access_ledger.errors import InvalidAccount

Address = NewType("Address", str)

ADDRESS_BYTES = 20
ZERO_ADDRESS: Address = Address("0x" + "00" * ADDRESS_BYTES)

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(value: Any) -> Address:
    """
    Canonical lowercase `0x` + 40 hex form of an account.

    Accepts the hex string form (any case) or raw 20-byte values. Anything
    else raises InvalidAccount with reason "malformed" ("null" for None and
    the empty string). The zero address is returned as-is; callers decide
    whether null is acceptable.
    """
    if value is None or value == "":
        raise InvalidAccount(account=value, reason="null")
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_BYTES:
            raise InvalidAccount(account=value, reason="malformed")
        return Address("0x" + bytes(value).hex())
    if isinstance(value, str) and _HEX_RE.match(value.strip()):
        return Address(value.strip().lower())
    raise InvalidAccount(account=value, reason="malformed")


def is_null(address: Address) -> bool:
    return address == ZERO_ADDRESS


def require_account(value: Any) -> Address:
    """Normalize and reject the null account."""
    addr = normalize_address(value)
    if is_null(addr):
        raise InvalidAccount(account=addr, reason="null")
    return addr


__all__ = ["Address", "ADDRESS_BYTES", "ZERO_ADDRESS", "normalize_address", "is_null", "require_account"]
