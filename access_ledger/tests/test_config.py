from __future__ import annotations

import json

import pytest

from access_ledger.config import LedgerConfig, from_env, from_file, load_config

from .conftest import ALICE, BOB

_ENV = (
    "ACCESS_LEDGER_OWNER",
    "ACCESS_LEDGER_SNAPSHOT_PATH",
    "ACCESS_LEDGER_METRICS_ENABLED",
    "ACCESS_LEDGER_LOG_LEVEL",
    "ACCESS_LEDGER_LOG_FORMAT",
    "ACCESS_LEDGER_LOG_FILE",
    "ACCESS_LEDGER_CONFIG_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = load_config()
    assert cfg == LedgerConfig()
    assert cfg.metrics_enabled is True
    assert cfg.logging.level == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ACCESS_LEDGER_OWNER", ALICE.upper().replace("0X", "0x"))
    monkeypatch.setenv("ACCESS_LEDGER_METRICS_ENABLED", "off")
    monkeypatch.setenv("ACCESS_LEDGER_LOG_FORMAT", "json")
    cfg = from_env()
    assert cfg.owner == ALICE
    assert cfg.metrics_enabled is False
    assert cfg.logging.format == "json"


def test_yaml_file_then_env(monkeypatch, tmp_path):
    path = tmp_path / "ledger.yaml"
    path.write_text(
        f"owner: \"{ALICE}\"\nsnapshot_path: /tmp/snap.json\nlogging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    cfg = from_file(path)
    assert (cfg.owner, cfg.snapshot_path, cfg.logging.level) == (ALICE, "/tmp/snap.json", "DEBUG")

    monkeypatch.setenv("ACCESS_LEDGER_CONFIG_FILE", str(path))
    monkeypatch.setenv("ACCESS_LEDGER_OWNER", BOB)
    cfg = load_config()
    assert cfg.owner == BOB
    assert cfg.logging.level == "DEBUG"


def test_json_file(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps({"metrics_enabled": False}), encoding="utf-8")
    assert from_file(path).metrics_enabled is False


def test_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("ACCESS_LEDGER_OWNER", ALICE)
    cfg = load_config(owner=BOB, snapshot_path=None)
    assert cfg.owner == BOB
    assert cfg.snapshot_path is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"owner": "0x" + "00" * 20},
        {"owner": "not-an-address"},
    ],
)
def test_bad_owner_rejected(kwargs):
    with pytest.raises(ValueError):
        load_config(**kwargs)


def test_bad_log_level_rejected(monkeypatch):
    monkeypatch.setenv("ACCESS_LEDGER_LOG_LEVEL", "LOUD")
    with pytest.raises(ValueError):
        from_env()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        from_file(tmp_path / "nope.yaml")


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        from_file(path)


@pytest.mark.parametrize("body", ["logging: debug\n", "logging: [a, b]\n"])
def test_non_mapping_logging_section(tmp_path, body):
    path = tmp_path / "cfg.yaml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError, match="logging must be a mapping"):
        from_file(path)
