from __future__ import annotations

"""
Authorization ledger — roles & blacklist
----------------------------------------

This module owns the whole authorization state of a deployment:
  • Role memberships for the closed set ADMIN / MODERATOR / USER
  • Per-role member counts, maintained incrementally on every grant/revoke
  • A per-account blacklist flag and the number of blacklisted accounts
  • The single Owner account

Mutations (caller identity is passed explicitly on every call):
  • grant_or_revoke_role   admin-only; idempotent (no-op if already in state)
  • set_blacklist          moderator-only; blacklisting strips every role,
                           whitelisting does NOT restore them; a redundant
                           toggle is rejected with NoStateChange
  • transfer_ownership     owner-only; moves ADMIN from old to new owner

Queries: has_role, is_blacklisted, get_role_count, get_contract_stats,
check_access, get_account_roles, owner.

Invariants (checked by `assert_consistent`):
  • counts[r] == |members[r]| for every role
  • no blacklisted account holds any role
  • the owner is never blacklisted
  • total_blacklisted == |blacklist|

Concurrency: a coarse `threading.RLock` serializes every call, queries
included, so a half-applied transition is never observable. Every call
validates all of its preconditions before it mutates anything.

Events are staged in an EventBuffer while a call runs and handed to the sink
once the state change is complete, still under the lock, so sink order is
commit order. A sink that raises is logged and counted; the call still
succeeds and every event keeps its seq. Persistence is delegated to higher
layers, which can snapshot `dump()` and restore via `load()`.
"""

import logging
from contextlib import contextmanager
from threading import RLock
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Set, Tuple

from access_ledger import metrics as _metrics
from access_ledger.errors import (AccountBlacklisted, InvalidAccount,
                                  InvariantViolation, LedgerError,
                                  NoStateChange, OwnerProtected,
                                  SnapshotError, Unauthorized)
from access_ledger.events import (EventBuffer, EventName, EventSink,
                                  LedgerEvent, NullSink)
from access_ledger.types.access import AccessDecision, AccessReason, LedgerStats
from access_ledger.types.address import (Address, is_null, normalize_address,
                                          require_account)
from access_ledger.types.role import ROLE_ORDER, Role, parse_role

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

OP_GRANT_OR_REVOKE = "grantOrRevokeRole"
OP_SET_BLACKLIST = "setBlacklist"
OP_TRANSFER_OWNERSHIP = "transferOwnership"


class AuthorizationLedger:
    """
    In-memory role/blacklist ledger.

    Storage-agnostic: call `dump()` to serialize to a JSON-friendly dict, and
    `load()` to restore. Notifications go to `sink` (anything with
    `emit(LedgerEvent)`); the default sink drops them.
    """

    def __init__(self, owner: Any, *, sink: Optional[EventSink] = None, metrics: bool = True) -> None:
        owner_addr = require_account(owner)
        self._setup(owner_addr, sink=sink, metrics=metrics)
        buf = EventBuffer()
        with self._lock:
            self._grant(Role.ADMIN, owner_addr, sender=owner_addr, buf=buf)
            self._commit("init", buf)
        log.info("ledger created owner=%s", owner_addr)

    def _setup(self, owner: Address, *, sink: Optional[EventSink], metrics: bool) -> None:
        self._lock = RLock()
        self._sink: EventSink = sink if sink is not None else NullSink()
        self._metrics = metrics
        self._owner: Address = owner
        self._members: Dict[Role, Set[Address]] = {r: set() for r in ROLE_ORDER}
        self._counts: Dict[Role, int] = {r: 0 for r in ROLE_ORDER}
        self._blacklist: Set[Address] = set()
        self._total_blacklisted = 0
        self._seq = 0

    # --- load/save ---

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "owner": self._owner,
                "members": {r.value: sorted(self._members[r]) for r in ROLE_ORDER},
                "counts": {r.value: self._counts[r] for r in ROLE_ORDER},
                "blacklist": sorted(self._blacklist),
                "total_blacklisted": self._total_blacklisted,
            }

    @classmethod
    def load(
        cls,
        data: Mapping[str, Any],
        *,
        sink: Optional[EventSink] = None,
        metrics: bool = True,
    ) -> "AuthorizationLedger":
        """
        Restore a ledger from `dump()` output. No events are emitted. Stored
        counts must agree with the stored members and every invariant must
        hold, otherwise SnapshotError.
        """
        if not isinstance(data, Mapping):
            raise SnapshotError("snapshot must be a mapping")
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise SnapshotError("unsupported snapshot version", details={"version": version})
        try:
            owner = require_account(data["owner"])
            members = {
                parse_role(name): {require_account(a) for a in accounts}
                for name, accounts in dict(data.get("members", {})).items()
            }
            counts = {parse_role(name): int(n) for name, n in dict(data.get("counts", {})).items()}
            blacklist = {require_account(a) for a in data.get("blacklist", [])}
            total = int(data.get("total_blacklisted", len(blacklist)))
        except KeyError as e:
            raise SnapshotError("snapshot missing field", details={"field": str(e)}) from e
        except (LedgerError, TypeError, ValueError) as e:
            raise SnapshotError("snapshot contains invalid values", details={"error": str(e)}) from e

        led = cls.__new__(cls)
        led._setup(owner, sink=sink, metrics=metrics)
        for role in ROLE_ORDER:
            led._members[role] = set(members.get(role, set()))
            led._counts[role] = counts.get(role, len(led._members[role]))
        led._blacklist = blacklist
        led._total_blacklisted = total
        try:
            led.assert_consistent()
        except InvariantViolation as e:
            raise SnapshotError("snapshot is inconsistent", details=e.details) from e
        if metrics:
            led._update_gauges()
        log.info("ledger loaded owner=%s blacklisted=%d", owner, total)
        return led

    # --- introspection ---

    @property
    def owner(self) -> Address:
        with self._lock:
            return self._owner

    @property
    def sink(self) -> EventSink:
        return self._sink

    def has_role(self, role: Any, account: Any) -> bool:
        r = parse_role(role)
        addr = normalize_address(account)
        with self._lock:
            return addr in self._members[r]

    def is_blacklisted(self, account: Any) -> bool:
        addr = normalize_address(account)
        with self._lock:
            return addr in self._blacklist

    def get_role_count(self, role: Any) -> int:
        r = parse_role(role)
        with self._lock:
            return self._counts[r]

    def get_contract_stats(self) -> LedgerStats:
        with self._lock:
            return LedgerStats(
                admin_count=self._counts[Role.ADMIN],
                moderator_count=self._counts[Role.MODERATOR],
                user_count=self._counts[Role.USER],
                blacklisted_count=self._total_blacklisted,
            )

    def get_account_roles(self, account: Any) -> Tuple[Role, ...]:
        addr = normalize_address(account)
        with self._lock:
            return tuple(r for r in ROLE_ORDER if addr in self._members[r])

    def check_access(self, account: Any, role: Any) -> AccessDecision:
        """
        Decide whether `account` may act as `role`. First match wins:

        1. blacklisted                  → (False, BLACKLISTED)
        2. holds `role`                 → (True, AUTHORIZED)
        3. holds ADMIN                  → (True, ADMIN_ACCESS)
        4. otherwise                    → (False, INSUFFICIENT_PERMISSIONS)
        """
        r = parse_role(role)
        addr = normalize_address(account)
        with self._lock:
            if addr in self._blacklist:
                decision = AccessDecision(False, AccessReason.BLACKLISTED)
            elif addr in self._members[r]:
                decision = AccessDecision(True, AccessReason.AUTHORIZED)
            elif addr in self._members[Role.ADMIN]:
                decision = AccessDecision(True, AccessReason.ADMIN_ACCESS)
            else:
                decision = AccessDecision(False, AccessReason.INSUFFICIENT_PERMISSIONS)
        if self._metrics:
            _metrics.observe_decision(decision.reason.value)
        return decision

    # --- mutations (all locked) ---

    def grant_or_revoke_role(self, caller: Any, role: Any, account: Any, grant: bool = True) -> bool:
        """
        Admin-only. Grant (`grant=True`) or revoke `role` for `account`.

        Returns True when membership changed, False when the account was
        already in the requested state (no event in that case).
        """
        with self._lock, self._guard(OP_GRANT_OR_REVOKE):
            sender = self._require_role(Role.ADMIN, caller)
            r = parse_role(role)
            addr = require_account(account)
            if addr in self._blacklist:
                raise AccountBlacklisted(account=addr)

            buf = EventBuffer()
            if grant:
                changed = self._grant(r, addr, sender=sender, buf=buf)
            else:
                changed = self._revoke(r, addr, sender=sender, buf=buf)
            self._commit(OP_GRANT_OR_REVOKE, buf)

        if changed:
            log.info("%s %s account=%s by=%s", "granted" if grant else "revoked", r.value, addr, sender)
        else:
            log.debug("no-op %s %s account=%s", "grant" if grant else "revoke", r.value, addr)
        return changed

    def set_blacklist(self, caller: Any, account: Any, blacklisted: bool = True) -> None:
        """
        Moderator-only. Blacklisting strips every role the account holds (one
        RoleRevoked each, in ADMIN, MODERATOR, USER order) before emitting
        AddressBlacklisted. Whitelisting only clears the flag.
        """
        with self._lock, self._guard(OP_SET_BLACKLIST):
            sender = self._require_role(Role.MODERATOR, caller)
            addr = require_account(account)
            if addr == self._owner:
                raise OwnerProtected(account=addr)
            if (addr in self._blacklist) == bool(blacklisted):
                raise NoStateChange(account=addr, blacklisted=bool(blacklisted))

            buf = EventBuffer()
            if blacklisted:
                stripped = [r for r in ROLE_ORDER if self._revoke(r, addr, sender=sender, buf=buf)]
                self._blacklist.add(addr)
                self._total_blacklisted += 1
                buf.add(EventName.ADDRESS_BLACKLISTED, account=addr, sender=sender)
            else:
                stripped = []
                self._blacklist.discard(addr)
                self._total_blacklisted -= 1
                buf.add(EventName.ADDRESS_WHITELISTED, account=addr, sender=sender)
            self._commit(OP_SET_BLACKLIST, buf)

        log.info(
            "%s account=%s by=%s stripped=%s",
            "blacklisted" if blacklisted else "whitelisted",
            addr,
            sender,
            ",".join(r.value for r in stripped) or "-",
        )

    def transfer_ownership(self, caller: Any, new_owner: Any) -> None:
        """
        Owner-only. Revoke ADMIN from the current owner, grant it to
        `new_owner` and move the owner pointer, as one transition.
        """
        with self._lock, self._guard(OP_TRANSFER_OWNERSHIP):
            sender = self._caller(caller, required="OWNER")
            if sender != self._owner:
                raise Unauthorized(caller=sender, required="OWNER")
            new_addr = require_account(new_owner)
            if new_addr in self._blacklist:
                raise AccountBlacklisted(account=new_addr)

            previous = self._owner
            buf = EventBuffer()
            self._revoke(Role.ADMIN, previous, sender=sender, buf=buf)
            self._grant(Role.ADMIN, new_addr, sender=sender, buf=buf)
            self._owner = new_addr
            self._commit(OP_TRANSFER_OWNERSHIP, buf)

        log.info("ownership transferred from=%s to=%s", previous, new_addr)

    # --- utilities ---

    def assert_consistent(self) -> None:
        """Verify invariants across all accounts."""
        with self._lock:
            for r in ROLE_ORDER:
                live = len(self._members[r])
                if self._counts[r] != live:
                    raise InvariantViolation(
                        f"role count drift for {r.value}",
                        details={"role": r.value, "count": self._counts[r], "members": live},
                    )
                tainted = self._members[r] & self._blacklist
                if tainted:
                    raise InvariantViolation(
                        f"blacklisted accounts hold {r.value}",
                        details={"role": r.value, "accounts": sorted(tainted)},
                    )
            if self._owner in self._blacklist:
                raise InvariantViolation("owner is blacklisted", details={"owner": self._owner})
            if is_null(self._owner):
                raise InvariantViolation("owner is the null account")
            if self._total_blacklisted != len(self._blacklist):
                raise InvariantViolation(
                    "blacklist total drift",
                    details={"total": self._total_blacklisted, "entries": len(self._blacklist)},
                )

    # --- internal helpers ---

    def _caller(self, caller: Any, *, required: str) -> Address:
        # An unparseable caller identity cannot hold anything.
        try:
            return normalize_address(caller)
        except InvalidAccount:
            raise Unauthorized(caller=str(caller), required=required) from None

    def _require_role(self, role: Role, caller: Any) -> Address:
        addr = self._caller(caller, required=role.value)
        if addr not in self._members[role]:
            raise Unauthorized(caller=addr, required=role.value)
        return addr

    def _grant(self, role: Role, account: Address, *, sender: Address, buf: EventBuffer) -> bool:
        members = self._members[role]
        if account in members:
            return False  # idempotent
        members.add(account)
        self._counts[role] += 1
        buf.add(EventName.ROLE_GRANTED, role=role.role_id, account=account, sender=sender)
        return True

    def _revoke(self, role: Role, account: Address, *, sender: Address, buf: EventBuffer) -> bool:
        members = self._members[role]
        if account not in members:
            return False  # idempotent
        members.discard(account)
        self._counts[role] -= 1
        buf.add(EventName.ROLE_REVOKED, role=role.role_id, account=account, sender=sender)
        return True

    def _commit(self, op: str, buf: EventBuffer) -> None:
        # State is already applied; sink errors are logged and the call succeeds.
        for name, args in buf.pending:
            self._seq += 1
            event = LedgerEvent(name=name, args=MappingProxyType(dict(args)), seq=self._seq)
            try:
                self._sink.emit(event)
            except Exception:
                log.exception("event sink failed op=%s event=%s seq=%d", op, name.value, event.seq)
                if self._metrics:
                    _metrics.observe_sink_failure(name.value)
            if self._metrics:
                _metrics.observe_event(name.value)
        if self._metrics:
            _metrics.observe_operation(op, "ok" if len(buf) else "noop")
            self._update_gauges()

    def _update_gauges(self) -> None:
        _metrics.set_gauges({r.value: self._counts[r] for r in ROLE_ORDER}, self._total_blacklisted)

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except LedgerError as e:
            log.debug("%s rejected: %s", op, e)
            if self._metrics:
                _metrics.observe_rejection(op, e.code)
            raise


__all__ = [
    "AuthorizationLedger",
    "SNAPSHOT_VERSION",
    "OP_GRANT_OR_REVOKE",
    "OP_SET_BLACKLIST",
    "OP_TRANSFER_OWNERSHIP",
]
