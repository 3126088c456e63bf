from __future__ import annotations
"""
access_ledger - role/blacklist authorization ledger.

A single-writer table of role memberships (ADMIN / MODERATOR / USER) layered
with an account blacklist, used to gate permissioned operations of a
decentralized application. Submodules are lazily imported so that importing
the package stays cheap for CLI startup.

Public surface (lazily loaded):
- ledger, events, errors, types
- config, logging, metrics, snapshot
- rpc, cli
"""


from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "AuthorizationLedger",
    # lazily importable subpackages/modules
    "ledger",
    "events",
    "errors",
    "types",
    "config",
    "logging",
    "metrics",
    "snapshot",
    "rpc",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__", "AuthorizationLedger"}


def __getattr__(name: str):
    if name == "AuthorizationLedger":
        return importlib.import_module(".ledger", __name__).AuthorizationLedger
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules | {"AuthorizationLedger"})


def get_version() -> str:
    return __version__
