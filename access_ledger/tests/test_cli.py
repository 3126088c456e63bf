from __future__ import annotations

import json

import pytest
import yaml
from typer.testing import CliRunner

from access_ledger.cli.main import app
from access_ledger.snapshot import read_snapshot
from access_ledger.types.role import Role

from .conftest import ALICE, MOD, OWNER, USER

pytestmark = pytest.mark.usefixtures("restore_logging")

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("OWNER", "SNAPSHOT_PATH", "CONFIG_FILE", "LOG_FILE", "LOG_LEVEL"):
        monkeypatch.delenv(f"ACCESS_LEDGER_{name}", raising=False)
    monkeypatch.setenv("ACCESS_LEDGER_METRICS_ENABLED", "false")
    monkeypatch.setenv("ACCESS_LEDGER_LOG_LEVEL", "ERROR")


@pytest.fixture
def script(tmp_path):
    steps = {
        "owner": OWNER,
        "steps": [
            {"caller": OWNER, "method": "grantOrRevokeRole", "params": {"role": "MODERATOR", "account": MOD}},
            {"caller": OWNER, "method": "grantOrRevokeRole", "params": {"role": "USER", "account": USER}},
            {"caller": MOD, "method": "setBlacklist", "params": {"account": USER, "blacklisted": True}},
            {"caller": MOD, "method": "setBlacklist", "params": {"account": OWNER}},
            {"method": "checkAccess", "params": {"account": OWNER, "role": "MODERATOR"}},
        ],
    }
    path = tmp_path / "scenario.yaml"
    path.write_text(yaml.safe_dump(steps), encoding="utf-8")
    return path


def test_roles_json():
    result = runner.invoke(app, ["roles", "--json"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert rows[1] == {"name": "MODERATOR", "label": "MODERATOR_ROLE", "id": Role.MODERATOR.role_id_hex}


def test_replay_json_and_save(script, tmp_path):
    out_path = tmp_path / "ledger.json"
    result = runner.invoke(app, ["replay", str(script), "--json", "--save", str(out_path)])
    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)

    assert report["failed"] == 1
    assert report["responses"][3]["error"]["data"]["code"] == "LEDGER_OWNER_PROTECTED"
    assert report["responses"][4]["result"] == {"granted": True, "reason": "ADMIN_ACCESS"}
    assert [e["name"] for e in report["events"]] == [
        "RoleGranted",
        "RoleGranted",
        "RoleGranted",
        "RoleRevoked",
        "AddressBlacklisted",
    ]
    assert report["stats"] == {"adminCount": 1, "moderatorCount": 1, "userCount": 0, "blacklistedCount": 1}
    assert read_snapshot(out_path)["blacklist"] == [USER]


def test_replay_strict_fails_on_rejection(script):
    result = runner.invoke(app, ["replay", str(script), "--strict"])
    assert result.exit_code == 1
    assert "LEDGER_OWNER_PROTECTED" in result.stdout
    assert "AddressBlacklisted" in result.stdout


def test_replay_accepts_json_list(tmp_path):
    path = tmp_path / "steps.json"
    path.write_text(
        json.dumps([{"caller": OWNER, "method": "ledger.grantOrRevokeRole", "params": {"role": "USER", "account": ALICE}}]),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["replay", str(path), "--owner", OWNER, "--json", "--strict"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["stats"]["userCount"] == 1


def test_replay_requires_owner(tmp_path):
    path = tmp_path / "steps.json"
    path.write_text("[]", encoding="utf-8")
    result = runner.invoke(app, ["replay", str(path)])
    assert result.exit_code == 2


def test_replay_resumes_from_snapshot(script, tmp_path):
    snap = tmp_path / "ledger.json"
    runner.invoke(app, ["replay", str(script), "--save", str(snap)])
    more = tmp_path / "more.yaml"
    more.write_text(
        yaml.safe_dump([{"caller": MOD, "method": "setBlacklist", "params": {"account": USER, "blacklisted": False}}]),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["replay", str(more), "--snapshot", str(snap), "--json", "--strict"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["events"][0]["name"] == "AddressWhitelisted"


def test_stats_and_check(script, tmp_path):
    snap = tmp_path / "ledger.json"
    runner.invoke(app, ["replay", str(script), "--save", str(snap)])

    result = runner.invoke(app, ["stats", "--snapshot", str(snap), "--json"])
    assert result.exit_code == 0, result.output
    stats = json.loads(result.stdout)
    assert stats["owner"] == OWNER and stats["blacklistedCount"] == 1

    result = runner.invoke(app, ["check", USER, "USER", "--snapshot", str(snap), "--json"])
    assert json.loads(result.stdout) == {"granted": False, "reason": "BLACKLISTED"}

    result = runner.invoke(app, ["check", MOD, "moderator", "--snapshot", str(snap)])
    assert "granted (AUTHORIZED)" in result.stdout


def test_stats_without_snapshot(tmp_path):
    result = runner.invoke(app, ["stats", "--snapshot", str(tmp_path / "missing.json")])
    assert result.exit_code == 2


def test_replay_non_object_params_are_invalid_params(tmp_path):
    path = tmp_path / "steps.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "owner": OWNER,
                "steps": [
                    {"caller": OWNER, "method": "grantOrRevokeRole", "params": ["USER", ALICE]},
                    {"method": "checkAccess", "params": "USER"},
                    {"caller": OWNER, "method": "grantOrRevokeRole", "params": {"role": "USER", "account": ALICE}},
                ],
            }
        ),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["replay", str(path), "--json"])
    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert [r.get("error", {}).get("code") for r in report["responses"]] == [-32602, -32602, None]
    assert report["responses"][2]["result"] == {"changed": True}


def test_config_with_scalar_logging_section_exits_2(tmp_path, script):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("logging: debug\n", encoding="utf-8")
    result = runner.invoke(app, ["--config", str(cfg), "replay", str(script)])
    assert result.exit_code == 2
    assert "logging must be a mapping" in result.output
