from __future__ import annotations

import json

import pytest

from access_ledger.errors import (AccountBlacklisted, InvalidAccount,
                                  InvalidRole, InvariantViolation, LedgerError,
                                  NoStateChange, OwnerProtected, SnapshotError,
                                  Unauthorized)

from .conftest import ALICE, OWNER


@pytest.mark.parametrize(
    "err, code",
    [
        (Unauthorized(caller=ALICE, required="ADMIN"), "LEDGER_UNAUTHORIZED"),
        (InvalidAccount(account=None), "LEDGER_INVALID_ACCOUNT"),
        (AccountBlacklisted(account=ALICE), "LEDGER_ACCOUNT_BLACKLISTED"),
        (OwnerProtected(account=OWNER), "LEDGER_OWNER_PROTECTED"),
        (NoStateChange(account=ALICE, blacklisted=True), "LEDGER_NO_STATE_CHANGE"),
        (InvalidRole(role="ROOT"), "LEDGER_INVALID_ROLE"),
        (SnapshotError("bad"), "LEDGER_SNAPSHOT_ERROR"),
        (InvariantViolation("drift"), "LEDGER_INVARIANT"),
    ],
)
def test_codes_and_serialization(err, code):
    assert isinstance(err, LedgerError)
    assert err.code == code
    d = err.to_dict()
    assert d["code"] == code
    json.dumps(d)  # JSON-safe
    assert str(err).startswith(code)


def test_details_carry_context():
    e = Unauthorized(caller=ALICE, required="MODERATOR")
    assert e.details == {"caller": ALICE, "required": "MODERATOR"}
    assert e.message == "caller is not authorized"


def test_bytes_are_printable():
    e = InvalidRole(role=b"\xab\xcd")
    assert e.details["role"] == "0xabcd"
    assert "0xabcd" in str(e)
