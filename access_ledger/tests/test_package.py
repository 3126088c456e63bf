from __future__ import annotations

import logging

import access_ledger
from access_ledger import logging as llog
from access_ledger.version import BASE_VERSION, get_version


def test_lazy_exports():
    from access_ledger.ledger import AuthorizationLedger

    assert access_ledger.AuthorizationLedger is AuthorizationLedger
    assert access_ledger.rpc.make_methods is not None
    assert "ledger" in dir(access_ledger)


def test_version(monkeypatch):
    assert get_version() == access_ledger.__version__
    monkeypatch.delenv("ACCESS_LEDGER_VERSION", raising=False)
    from access_ledger.version import build_version

    assert build_version() == BASE_VERSION
    monkeypatch.setenv("ACCESS_LEDGER_VERSION", "9.9.9-ci")
    assert build_version() == "9.9.9-ci"


def test_get_logger_defaults_to_package():
    assert llog.get_logger().name == "access_ledger"
    assert isinstance(llog.get_logger("access_ledger.x"), logging.Logger)


def test_unbind_and_short_uuid():
    llog.clear_context()
    llog.bind(op="x", caller="y")
    llog.unbind("op")
    assert llog.context() == {"caller": "y"}
    llog.clear_context()
    assert len(llog.short_uuid()) == 12
