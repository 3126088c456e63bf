"""
access-ledger - command-line interface for the authorization ledger.

Commands:
  roles     List role names and their 32-byte wire ids
  replay    Run a YAML/JSON script of ledger calls and print results, events, stats
  stats     Print aggregate counts of a saved snapshot
  check     Print the access decision for an account/role in a saved snapshot
  serve     Serve the JSON-RPC/HTTP surface (FastAPI + uvicorn)

Global options:
  --config PATH          Path to config file (JSON/YAML)
  --verbose / -v         DEBUG logging

Configuration is resolved in this order (highest to lowest priority):
  1. Command-line flags (--owner, --snapshot)
  2. Environment variables (ACCESS_LEDGER_OWNER, ACCESS_LEDGER_SNAPSHOT_PATH, ...)
  3. Config file (--config or ACCESS_LEDGER_CONFIG_FILE)
  4. Built-in defaults

Replay script format (YAML or JSON):

  owner: "0x5b38da6a701c568545dcfcb03fcb875f56beddc4"   # optional, else --owner
  steps:
    - caller: "0x5b38da6a701c568545dcfcb03fcb875f56beddc4"
      method: grantOrRevokeRole
      params: {role: MODERATOR, account: "0xab84...", grant: true}
    - method: checkAccess
      params: {account: "0xab84...", role: USER}

A bare list of steps is accepted too.

Examples:
  access-ledger roles --json
  access-ledger replay scenario.yaml --owner 0x5b38... --save ledger.json
  access-ledger stats --snapshot ledger.json
  access-ledger check 0xab84... MODERATOR --snapshot ledger.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from access_ledger import logging as llog
from access_ledger.config import LedgerConfig, load_config
from access_ledger.errors import LedgerError
from access_ledger.events import MemoryEventSink
from access_ledger.rpc.methods import dispatch, make_methods, role_table
from access_ledger.snapshot import open_ledger, write_snapshot

app = typer.Typer(
    name="access-ledger",
    help="Role/blacklist authorization ledger.",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.config_path: Optional[str] = None
        self.verbose: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to config file (JSON or YAML)",
        envvar="ACCESS_LEDGER_CONFIG_FILE",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="DEBUG logging"),
) -> None:
    _ctx.config_path = config
    _ctx.verbose = verbose


def _load_cfg(*, owner: Optional[str] = None, snapshot: Optional[str] = None) -> LedgerConfig:
    try:
        cfg = load_config(_ctx.config_path, owner=owner, snapshot_path=snapshot)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        typer.secho(f"config error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    if _ctx.verbose:
        cfg.logging.level = "DEBUG"
    llog.configure_from_config(cfg)
    return cfg


def _read_script(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if isinstance(data, list):
        data = {"steps": data}
    if not isinstance(data, dict) or not isinstance(data.get("steps", []), list):
        raise ValueError("script must be a list of steps or a mapping with a 'steps' list")
    return data


def _step_request(i: int, step: Any) -> Dict[str, Any]:
    if not isinstance(step, dict):
        return {"jsonrpc": "2.0", "id": i, "method": None}
    params = step.get("params")
    if params is None:
        params = {}
    if isinstance(params, dict):
        params = dict(params)
        if "caller" in step and "caller" not in params:
            params["caller"] = step["caller"]
    elif not isinstance(params, list):
        # scalars are not positional params either; dispatch answers -32602
        params = [params]
    return {"jsonrpc": "2.0", "id": i, "method": step.get("method"), "params": params}


@app.command("roles")
def roles_cmd(json_output: bool = typer.Option(False, "--json", help="Output JSON")) -> None:
    """List role names and their wire ids."""
    rows = role_table()
    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return
    for row in rows:
        typer.echo(f"{row['name']:<10} {row['id']}")


@app.command("replay")
def replay_cmd(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML/JSON script of steps"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Owner of a fresh ledger"),
    snapshot: Optional[str] = typer.Option(None, "--snapshot", help="Start from this snapshot if it exists"),
    save: Optional[Path] = typer.Option(None, "--save", help="Write the final snapshot here"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 if any step fails"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Run a script of ledger calls against a fresh (or loaded) ledger."""
    try:
        data = _read_script(script)
    except (ValueError, yaml.YAMLError) as e:
        typer.secho(f"bad script: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    cfg = _load_cfg(owner=owner or data.get("owner"), snapshot=snapshot)
    sink = MemoryEventSink()
    try:
        ledger = open_ledger(cfg, sink=sink)
    except (ValueError, LedgerError) as e:
        typer.secho(f"cannot open ledger: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    methods = make_methods(ledger)
    responses: List[Dict[str, Any]] = []
    with llog.trace_scope():
        for i, step in enumerate(data.get("steps", []), start=1):
            req = _step_request(i, step)
            llog.bind(op=req.get("method"), caller=step.get("caller") if isinstance(step, dict) else None)
            responses.append(dispatch(methods, req))
    failed = sum(1 for r in responses if "error" in r)

    if save is not None:
        write_snapshot(ledger, save)

    events = [e.to_dict() for e in sink.events()]
    stats = ledger.get_contract_stats().to_dict()
    if json_output:
        typer.echo(json.dumps({"responses": responses, "events": events, "stats": stats, "failed": failed}, indent=2))
    else:
        for r in responses:
            method = _step_method(data, r["id"])
            if "error" in r:
                code = (r["error"].get("data") or {}).get("code", r["error"]["code"])
                typer.secho(f"[{r['id']}] {method}: {code}: {r['error']['message']}", fg=typer.colors.RED)
            else:
                typer.echo(f"[{r['id']}] {method}: {json.dumps(r['result'])}")
        typer.secho("events:", bold=True)
        for e in events:
            args = " ".join(f"{k}={v}" for k, v in e["args"].items())
            typer.echo(f"  #{e['seq']} {e['name']} {args}")
        typer.secho("stats:", bold=True)
        for k, v in stats.items():
            typer.echo(f"  {k}: {v}")

    if strict and failed:
        raise typer.Exit(1)


def _step_method(data: Dict[str, Any], rid: int) -> str:
    steps = data.get("steps", [])
    step = steps[rid - 1] if 0 < rid <= len(steps) else None
    return str(step.get("method")) if isinstance(step, dict) else "?"


@app.command("stats")
def stats_cmd(
    snapshot: Optional[str] = typer.Option(None, "--snapshot", help="Snapshot file"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Print aggregate counts of a saved snapshot."""
    ledger = _open_existing(snapshot)
    stats = ledger.get_contract_stats().to_dict()
    if json_output:
        typer.echo(json.dumps({"owner": ledger.owner, **stats}, indent=2))
        return
    typer.echo(f"owner: {ledger.owner}")
    for k, v in stats.items():
        typer.echo(f"{k}: {v}")


@app.command("check")
def check_cmd(
    account: str = typer.Argument(..., help="Account address (0x...)"),
    role: str = typer.Argument(..., help="Role name or id"),
    snapshot: Optional[str] = typer.Option(None, "--snapshot", help="Snapshot file"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Print the access decision for ACCOUNT acting as ROLE."""
    ledger = _open_existing(snapshot)
    try:
        decision = ledger.check_access(account, role)
    except LedgerError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    if json_output:
        typer.echo(json.dumps(decision.to_dict()))
        return
    color = typer.colors.GREEN if decision.granted else typer.colors.RED
    typer.secho(f"{'granted' if decision.granted else 'denied'} ({decision.reason.value})", fg=color)


@app.command("serve")
def serve_cmd(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8650, "--port"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Owner of a fresh ledger"),
    snapshot: Optional[str] = typer.Option(None, "--snapshot", help="Start from this snapshot if it exists"),
) -> None:
    """Serve the JSON-RPC endpoint and HTTP views."""
    import uvicorn

    from access_ledger.events import LoggingEventSink
    from access_ledger.rpc.mount import build_app

    cfg = _load_cfg(owner=owner, snapshot=snapshot)
    try:
        ledger = open_ledger(cfg, sink=LoggingEventSink())
    except (ValueError, LedgerError) as e:
        typer.secho(f"cannot open ledger: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    uvicorn.run(build_app(ledger), host=host, port=port, log_config=None)


def _open_existing(snapshot: Optional[str]):
    cfg = _load_cfg(snapshot=snapshot)
    path = cfg.snapshot_path
    if not path or not Path(path).expanduser().exists():
        typer.secho("no snapshot found (use --snapshot or ACCESS_LEDGER_SNAPSHOT_PATH)", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    try:
        return open_ledger(cfg)
    except LedgerError as e:
        typer.secho(f"cannot open snapshot: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)


if __name__ == "__main__":
    app()
