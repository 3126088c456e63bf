from __future__ import annotations
# access_ledger/errors.py
"""
Error types for the authorization ledger. These are lightweight, serializable,
and safe to surface over RPC/logs.

Every rejection is synchronous and leaves the ledger untouched: preconditions
are checked before any mutation, so there is nothing to roll back.

Exports:
- LedgerError (base)
- Unauthorized
- InvalidAccount
- AccountBlacklisted
- OwnerProtected
- NoStateChange
- InvalidRole
- SnapshotError
- InvariantViolation
"""


from typing import Any, Dict, Mapping, Optional
import json


class LedgerError(Exception):
    """Base class for ledger domain errors."""

    code: str = "LEDGER_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class Unauthorized(LedgerError):
    """Caller lacks the role (or ownership) the operation requires."""
    code = "LEDGER_UNAUTHORIZED"

    def __init__(
        self,
        *,
        caller: str,
        required: str,
        message: str = "caller is not authorized",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"caller": caller, "required": required})
        super().__init__(message, details=d)


class InvalidAccount(LedgerError):
    """Null (zero) or malformed account identifier."""
    code = "LEDGER_INVALID_ACCOUNT"

    def __init__(
        self,
        *,
        account: Any,
        reason: str = "null",
        message: str = "invalid account",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"account": _printable(account), "reason": reason})
        super().__init__(message, details=d)


class AccountBlacklisted(LedgerError):
    """Target account is blacklisted where the operation forbids it."""
    code = "LEDGER_ACCOUNT_BLACKLISTED"

    def __init__(
        self,
        *,
        account: str,
        message: str = "account is blacklisted",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.setdefault("account", account)
        super().__init__(message, details=d)


class OwnerProtected(LedgerError):
    """The ledger owner can never be blacklisted."""
    code = "LEDGER_OWNER_PROTECTED"

    def __init__(
        self,
        *,
        account: str,
        message: str = "owner cannot be blacklisted",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.setdefault("account", account)
        super().__init__(message, details=d)


class NoStateChange(LedgerError):
    """
    Blacklist toggle requested to the value the account already has. Unlike
    role grants, a redundant blacklist toggle is rejected rather than ignored.
    """
    code = "LEDGER_NO_STATE_CHANGE"

    def __init__(
        self,
        *,
        account: str,
        blacklisted: bool,
        message: str = "account already in requested blacklist state",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"account": account, "blacklisted": bool(blacklisted)})
        super().__init__(message, details=d)


class InvalidRole(LedgerError):
    """Role identifier outside the closed ADMIN/MODERATOR/USER set."""
    code = "LEDGER_INVALID_ROLE"

    def __init__(
        self,
        *,
        role: Any,
        message: str = "unknown role",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.setdefault("role", _printable(role))
        super().__init__(message, details=d)


class SnapshotError(LedgerError):
    """A snapshot passed to `AuthorizationLedger.load` is malformed or inconsistent."""
    code = "LEDGER_SNAPSHOT_ERROR"


class InvariantViolation(LedgerError):
    """Live ledger state drifted from one of its invariants."""
    code = "LEDGER_INVARIANT"


def _printable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if value is None or isinstance(value, (str, int, bool)):
        return value
    return repr(value)


__all__ = [
    "LedgerError",
    "Unauthorized",
    "InvalidAccount",
    "AccountBlacklisted",
    "OwnerProtected",
    "NoStateChange",
    "InvalidRole",
    "SnapshotError",
    "InvariantViolation",
]
