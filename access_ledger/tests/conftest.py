from __future__ import annotations

import hashlib
import logging

import pytest

from access_ledger.events import MemoryEventSink
from access_ledger.ledger import AuthorizationLedger
from access_ledger.types.role import Role


def det_address(tag: str) -> str:
    """Stable 0x-prefixed 20-byte address derived from a tag."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


OWNER = det_address("owner")
MOD = det_address("moderator")
USER = det_address("user")
ALICE = det_address("alice")
BOB = det_address("bob")
ZERO = "0x" + "00" * 20


@pytest.fixture
def sink() -> MemoryEventSink:
    return MemoryEventSink()


@pytest.fixture
def ledger(sink: MemoryEventSink) -> AuthorizationLedger:
    """Fresh ledger owned by OWNER; the creation event is cleared from the sink."""
    led = AuthorizationLedger(OWNER, sink=sink, metrics=False)
    sink.clear()
    return led


@pytest.fixture
def populated(ledger: AuthorizationLedger, sink: MemoryEventSink) -> AuthorizationLedger:
    """OWNER is admin, MOD holds MODERATOR, USER holds USER."""
    ledger.grant_or_revoke_role(OWNER, Role.MODERATOR, MOD, True)
    ledger.grant_or_revoke_role(OWNER, Role.USER, USER, True)
    sink.clear()
    return ledger


@pytest.fixture
def restore_logging():
    # CLI commands reconfigure the root logger; put the original handlers back.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
