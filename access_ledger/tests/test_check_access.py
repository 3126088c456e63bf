from __future__ import annotations

import pytest

from access_ledger.errors import InvalidAccount, InvalidRole
from access_ledger.types.access import AccessReason
from access_ledger.types.role import ROLE_ORDER, Role

from .conftest import ALICE, MOD, OWNER, USER, ZERO


def test_member_is_authorized(populated):
    assert populated.check_access(USER, Role.USER) == (True, AccessReason.AUTHORIZED)
    assert populated.check_access(MOD, "MODERATOR") == (True, AccessReason.AUTHORIZED)


@pytest.mark.parametrize("role", ROLE_ORDER)
def test_admin_access_fallback(populated, role):
    expected = AccessReason.AUTHORIZED if role is Role.ADMIN else AccessReason.ADMIN_ACCESS
    assert populated.check_access(OWNER, role) == (True, expected)


def test_insufficient_permissions(populated):
    assert populated.check_access(USER, Role.MODERATOR) == (False, AccessReason.INSUFFICIENT_PERMISSIONS)
    assert populated.check_access(ALICE, Role.USER) == (False, AccessReason.INSUFFICIENT_PERMISSIONS)


def test_blacklisted_is_denied_first(populated):
    populated.set_blacklist(MOD, USER, True)
    for role in ROLE_ORDER:
        assert populated.check_access(USER, role) == (False, AccessReason.BLACKLISTED)


def test_whitelisted_account_stays_without_roles(populated):
    populated.set_blacklist(MOD, USER, True)
    populated.set_blacklist(MOD, USER, False)
    assert populated.check_access(USER, Role.USER) == (False, AccessReason.INSUFFICIENT_PERMISSIONS)


def test_zero_address_holds_nothing(populated):
    assert populated.check_access(ZERO, Role.USER).granted is False
    assert populated.has_role(Role.USER, ZERO) is False
    assert populated.is_blacklisted(ZERO) is False


def test_query_rejects_malformed_input(populated):
    with pytest.raises(InvalidAccount):
        populated.check_access("0x12", Role.USER)
    with pytest.raises(InvalidRole):
        populated.check_access(USER, "ROOT")


def test_checks_do_not_mutate(populated, sink):
    before = populated.dump()
    populated.check_access(USER, Role.ADMIN)
    populated.get_contract_stats()
    populated.get_account_roles(MOD)
    assert populated.dump() == before
    assert len(sink) == 0
