from __future__ import annotations

"""
Closed role set of the ledger.

Each role carries a stable 32-byte id, `sha3_256(b"<NAME>_ROLE")`, which is
what travels on the wire and inside events. Adding a role means adding an
enum member; nothing else in the ledger keys on role names.
"""

import hashlib
from enum import Enum
from typing import Any, Dict, Tuple

from access_ledger.errors import InvalidRole

ROLE_ID_BYTES = 32


def derive_role_id(name: bytes) -> bytes:
    """Deterministic role id derivation: sha3_256(name) → bytes32."""
    return hashlib.sha3_256(name).digest()


class Role(str, Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    USER = "USER"

    @property
    def label(self) -> str:
        return f"{self.value}_ROLE"

    @property
    def role_id(self) -> bytes:
        return _ROLE_IDS[self]

    @property
    def role_id_hex(self) -> str:
        return "0x" + self.role_id.hex()


# Fixed iteration order used for stripping roles and for stats.
ROLE_ORDER: Tuple[Role, ...] = (Role.ADMIN, Role.MODERATOR, Role.USER)

_ROLE_IDS: Dict[Role, bytes] = {r: derive_role_id(f"{r.value}_ROLE".encode("ascii")) for r in Role}
_BY_ID: Dict[bytes, Role] = {rid: r for r, rid in _ROLE_IDS.items()}


def parse_role(value: Any) -> Role:
    """
    Resolve a role from an enum member, a name ("ADMIN", "admin", "ADMIN_ROLE")
    or a 32-byte id (raw bytes or 0x-hex). Raises InvalidRole otherwise.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, (bytes, bytearray)):
        role = _BY_ID.get(bytes(value))
        if role is None:
            raise InvalidRole(role=value)
        return role
    if isinstance(value, str):
        s = value.strip()
        if s.lower().startswith("0x") and len(s) == 2 + 2 * ROLE_ID_BYTES:
            try:
                raw = bytes.fromhex(s[2:])
            except ValueError as e:
                raise InvalidRole(role=value) from e
            return parse_role(raw)
        name = s.upper()
        if name.endswith("_ROLE"):
            name = name[: -len("_ROLE")]
        try:
            return Role(name)
        except ValueError as e:
            raise InvalidRole(role=value) from e
    raise InvalidRole(role=value)


__all__ = ["Role", "ROLE_ORDER", "ROLE_ID_BYTES", "derive_role_id", "parse_role"]
