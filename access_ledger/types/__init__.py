from __future__ import annotations
"""
Value types shared by the ledger, its RPC surface and the CLI.

- address: account identifiers (0x-prefixed 20-byte hex) and the null account
- role:    the closed Role enumeration and its 32-byte ids
- access:  access decisions and aggregate statistics
"""

from .access import AccessDecision, AccessReason, LedgerStats
from .address import ZERO_ADDRESS, Address, is_null, normalize_address
from .role import ROLE_ORDER, Role, parse_role

__all__ = [
    "Address",
    "ZERO_ADDRESS",
    "normalize_address",
    "is_null",
    "Role",
    "ROLE_ORDER",
    "parse_role",
    "AccessReason",
    "AccessDecision",
    "LedgerStats",
]
