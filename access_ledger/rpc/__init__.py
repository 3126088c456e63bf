from __future__ import annotations
"""
RPC surface of the authorization ledger.

- methods: transport-agnostic JSON-RPC method table and dispatcher
- models:  pydantic JSON-RPC envelopes
- mount:   FastAPI router/app wiring
"""

from .methods import dispatch, make_methods, role_table
from .models import JsonRpcError, JsonRpcRequest
from .mount import build_app, mount_ledger

__all__ = [
    "make_methods",
    "dispatch",
    "role_table",
    "JsonRpcRequest",
    "JsonRpcError",
    "build_app",
    "mount_ledger",
]
