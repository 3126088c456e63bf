from __future__ import annotations

from enum import Enum
from typing import Any, Dict, NamedTuple


class AccessReason(str, Enum):
    BLACKLISTED = "BLACKLISTED"
    AUTHORIZED = "AUTHORIZED"
    ADMIN_ACCESS = "ADMIN_ACCESS"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


class AccessDecision(NamedTuple):
    """Outcome of `check_access`; compares equal to a plain (granted, reason) tuple."""

    granted: bool
    reason: AccessReason

    def to_dict(self) -> Dict[str, Any]:
        return {"granted": self.granted, "reason": self.reason.value}


class LedgerStats(NamedTuple):
    admin_count: int
    moderator_count: int
    user_count: int
    blacklisted_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "adminCount": self.admin_count,
            "moderatorCount": self.moderator_count,
            "userCount": self.user_count,
            "blacklistedCount": self.blacklisted_count,
        }


__all__ = ["AccessReason", "AccessDecision", "LedgerStats"]
