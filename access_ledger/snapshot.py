from __future__ import annotations

"""
Snapshot files for the ledger: `AuthorizationLedger.dump()` written as JSON.

The ledger itself is storage-agnostic; the CLI and the RPC server use these
helpers to start from (and save to) `LedgerConfig.snapshot_path`.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from access_ledger.config import LedgerConfig
from access_ledger.errors import SnapshotError
from access_ledger.events import EventSink
from access_ledger.ledger import AuthorizationLedger

log = logging.getLogger(__name__)


def read_snapshot(path: str | os.PathLike[str]) -> Dict[str, Any]:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SnapshotError("snapshot is not valid JSON", details={"path": str(p)}) from e
    if not isinstance(data, dict):
        raise SnapshotError("snapshot must be a JSON object", details={"path": str(p)})
    return data


def write_snapshot(ledger: AuthorizationLedger, path: str | os.PathLike[str]) -> Path:
    """Write `ledger.dump()` atomically (temp file + rename)."""
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=p.name + ".", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(ledger.dump(), fh, indent=2, sort_keys=True)
            fh.write("\n")
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    log.info("snapshot written path=%s", p)
    return p


def open_ledger(
    cfg: LedgerConfig,
    *,
    sink: Optional[EventSink] = None,
    snapshot_path: Optional[str | os.PathLike[str]] = None,
) -> AuthorizationLedger:
    """
    Load the ledger from the snapshot file when one exists, otherwise create a
    fresh ledger owned by `cfg.owner`.
    """
    path = snapshot_path or cfg.snapshot_path
    if path and Path(path).expanduser().exists():
        return AuthorizationLedger.load(
            read_snapshot(Path(path).expanduser()), sink=sink, metrics=cfg.metrics_enabled
        )
    if not cfg.owner:
        raise ValueError("no snapshot to load and no owner configured (set ACCESS_LEDGER_OWNER or --owner)")
    return AuthorizationLedger(cfg.owner, sink=sink, metrics=cfg.metrics_enabled)


__all__ = ["read_snapshot", "write_snapshot", "open_ledger"]
