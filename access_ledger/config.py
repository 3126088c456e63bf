from __future__ import annotations
"""
access_ledger.config — configuration for the authorization ledger service

Covers:
- Initial owner for a fresh ledger
- Optional snapshot file the CLI/RPC app loads at start and saves to
- Metrics toggle
- Logging level / format / file

Environment overrides (all optional; sensible defaults provided):

  ACCESS_LEDGER_OWNER=0x5b38da6a701c568545dcfcb03fcb875f56beddc4
  ACCESS_LEDGER_SNAPSHOT_PATH=/var/lib/access-ledger/snapshot.json
  ACCESS_LEDGER_METRICS_ENABLED=true

  ACCESS_LEDGER_LOG_LEVEL=INFO
  ACCESS_LEDGER_LOG_FORMAT=text        # text | json
  ACCESS_LEDGER_LOG_FILE=/var/log/access-ledger.log

You can also load from a JSON or YAML file via
`ACCESS_LEDGER_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional
import json
import os
from pathlib import Path

import yaml

from access_ledger.errors import InvalidAccount
from access_ledger.types.address import require_account

ENV_PREFIX = "ACCESS_LEDGER_"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_LOG_FORMATS = ("text", "json")


# -------------------------- Data classes --------------------------


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "text"
    file: Optional[str] = None

    def validate(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)} (got {self.level!r}).")
        if self.format.lower() not in _LOG_FORMATS:
            raise ValueError(f"logging.format must be 'text' or 'json' (got {self.format!r}).")


@dataclass
class LedgerConfig:
    """Top-level configuration container."""
    owner: Optional[str] = None
    snapshot_path: Optional[str] = None
    metrics_enabled: bool = True
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.logging.validate()
        if self.owner is not None:
            try:
                self.owner = require_account(self.owner)
            except InvalidAccount as e:
                raise ValueError(f"owner must be a non-null 0x address (got {self.owner!r}).") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _parse_bool(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_bool(v: Any) -> bool:
    return _parse_bool(v) if isinstance(v, str) else bool(v)


def _getenv(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def from_env(base: Optional[LedgerConfig] = None, prefix: str = ENV_PREFIX) -> LedgerConfig:
    """
    Build a LedgerConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or LedgerConfig()

    owner = _getenv(f"{prefix}OWNER") or cfg.owner
    snapshot = _getenv(f"{prefix}SNAPSHOT_PATH") or cfg.snapshot_path
    metrics_raw = _getenv(f"{prefix}METRICS_ENABLED")
    metrics_enabled = _parse_bool(metrics_raw) if metrics_raw is not None else cfg.metrics_enabled

    log_cfg = LoggingConfig(
        level=_getenv(f"{prefix}LOG_LEVEL") or cfg.logging.level,
        format=_getenv(f"{prefix}LOG_FORMAT") or cfg.logging.format,
        file=_getenv(f"{prefix}LOG_FILE") or cfg.logging.file,
    )

    new_cfg = LedgerConfig(
        owner=owner,
        snapshot_path=snapshot,
        metrics_enabled=metrics_enabled,
        logging=log_cfg,
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> LedgerConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"config file {p} must contain a mapping at top level")

    defaults = LedgerConfig()
    log_data = data.get("logging", {}) or {}
    if not isinstance(log_data, dict):
        raise ValueError(f"config file {p}: logging must be a mapping (got {log_data!r})")

    cfg = LedgerConfig(
        owner=data.get("owner", defaults.owner),
        snapshot_path=data.get("snapshot_path", defaults.snapshot_path),
        metrics_enabled=_as_bool(data.get("metrics_enabled", defaults.metrics_enabled)),
        logging=LoggingConfig(
            level=str(log_data.get("level", defaults.logging.level)),
            format=str(log_data.get("format", defaults.logging.format)),
            file=log_data.get("file", defaults.logging.file),
        ),
    )
    cfg.validate()
    return cfg


def load_config(path: Optional[str | os.PathLike[str]] = None, **overrides: Any) -> LedgerConfig:
    """
    Resolve configuration with precedence (highest first):
      1) explicit keyword overrides (None values are ignored)
      2) environment (ACCESS_LEDGER_*)
      3) file at `path` or $ACCESS_LEDGER_CONFIG_FILE
      4) built-in defaults
    """
    file_path = path or _getenv(f"{ENV_PREFIX}CONFIG_FILE")
    base = from_file(file_path) if file_path else LedgerConfig()
    cfg = from_env(base)
    picked = {k: v for k, v in overrides.items() if v is not None}
    if picked:
        cfg = replace(cfg, **picked)
        cfg.validate()
    return cfg


__all__ = [
    "ENV_PREFIX",
    "LoggingConfig",
    "LedgerConfig",
    "from_env",
    "from_file",
    "load_config",
]
