from __future__ import annotations

"""
access_ledger.rpc.methods
-------------------------

JSON-RPC style method implementations for the authorization ledger.

Exposed methods (bind via `make_methods`):
  • ledger.grantOrRevokeRole   {caller, role, account, grant}
  • ledger.setBlacklist        {caller, account, blacklisted}
  • ledger.transferOwnership   {caller, newOwner}
  • ledger.checkAccess         {account, role}
  • ledger.hasRole             {role, account}
  • ledger.isBlacklisted       {account}
  • ledger.getRoleCount        {role}
  • ledger.getContractStats    {}
  • ledger.getAccountRoles     {account}
  • ledger.owner               {}
  • ledger.dump                {}

Design:
  - Transport-agnostic: `make_methods` returns a dict of callables taking
    keyword params and returning JSON-serializable structures. `dispatch`
    turns one JSON-RPC 2.0 request object into a response object; the
    FastAPI mount and the CLI replay both go through it.
  - Envelopes are validated with the pydantic models in `.models`; method
    params stay keyword mappings checked by the callables.
  - Role params accept names ("MODERATOR", "moderator_role") or 0x ids.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from pydantic import ValidationError

from access_ledger.errors import LedgerError
from access_ledger.ledger import AuthorizationLedger
from access_ledger.types.role import ROLE_ORDER

from .models import JsonRpcError, JsonRpcRequest

log = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# JSON-RPC 2.0 error codes
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
LEDGER_ERROR = -32000

METHOD_PREFIX = "ledger."


class RpcError(Exception):
    """Protocol-level failure (bad request / unknown method / bad params)."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


def _coerce_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise RpcError(INVALID_PARAMS, f"invalid {name}: expected a boolean")


# ---- JSON-RPC method factory ----------------------------------------------

def make_methods(ledger: AuthorizationLedger) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """

    def grant_or_revoke_role(*, caller: str, role: str, account: str, grant: Any = True) -> Dict[str, Any]:
        changed = ledger.grant_or_revoke_role(caller, role, account, _coerce_bool(grant, "grant"))
        return {"changed": changed}

    def set_blacklist(*, caller: str, account: str, blacklisted: Any = True) -> Dict[str, Any]:
        ledger.set_blacklist(caller, account, _coerce_bool(blacklisted, "blacklisted"))
        return {"ok": True}

    def transfer_ownership(*, caller: str, newOwner: str) -> Dict[str, Any]:
        ledger.transfer_ownership(caller, newOwner)
        return {"owner": ledger.owner}

    def check_access(*, account: str, role: str) -> Dict[str, Any]:
        return ledger.check_access(account, role).to_dict()

    def has_role(*, role: str, account: str) -> bool:
        return ledger.has_role(role, account)

    def is_blacklisted(*, account: str) -> bool:
        return ledger.is_blacklisted(account)

    def get_role_count(*, role: str) -> int:
        return ledger.get_role_count(role)

    def get_contract_stats() -> Dict[str, int]:
        return ledger.get_contract_stats().to_dict()

    def get_account_roles(*, account: str) -> list:
        return [r.value for r in ledger.get_account_roles(account)]

    def owner() -> str:
        return ledger.owner

    def dump() -> Dict[str, Any]:
        return ledger.dump()

    # Map JSON-RPC names → callables
    return {
        f"{METHOD_PREFIX}grantOrRevokeRole": grant_or_revoke_role,
        f"{METHOD_PREFIX}setBlacklist": set_blacklist,
        f"{METHOD_PREFIX}transferOwnership": transfer_ownership,
        f"{METHOD_PREFIX}checkAccess": check_access,
        f"{METHOD_PREFIX}hasRole": has_role,
        f"{METHOD_PREFIX}isBlacklisted": is_blacklisted,
        f"{METHOD_PREFIX}getRoleCount": get_role_count,
        f"{METHOD_PREFIX}getContractStats": get_contract_stats,
        f"{METHOD_PREFIX}getAccountRoles": get_account_roles,
        f"{METHOD_PREFIX}owner": owner,
        f"{METHOD_PREFIX}dump": dump,
    }


def resolve_method(methods: Mapping[str, Callable[..., Any]], name: Any) -> Callable[..., Any]:
    """Accept both `ledger.setBlacklist` and bare `setBlacklist`."""
    if not isinstance(name, str) or not name:
        raise RpcError(INVALID_REQUEST, "method must be a non-empty string")
    fn = methods.get(name) or methods.get(METHOD_PREFIX + name)
    if fn is None:
        raise RpcError(METHOD_NOT_FOUND, f"method not found: {name}")
    return fn


def call_method(methods: Mapping[str, Callable[..., Any]], name: Any, params: Any) -> Any:
    fn = resolve_method(methods, name)
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise RpcError(INVALID_PARAMS, "params must be an object")
    try:
        return fn(**dict(params))
    except TypeError as e:
        # Missing or unexpected keyword params.
        raise RpcError(INVALID_PARAMS, str(e)) from e


def dispatch(methods: Mapping[str, Callable[..., Any]], request: Any) -> Dict[str, Any]:
    """
    Execute one JSON-RPC 2.0 request object and return the response object.
    Ledger rejections map to code -32000 with `data = err.to_dict()`.
    """
    rid = request.get("id") if isinstance(request, Mapping) else None

    def err(code: int, message: str, data: Any = None) -> Dict[str, Any]:
        body = JsonRpcError(code=code, message=message, data=data).model_dump(exclude_none=True)
        return {"jsonrpc": JSONRPC_VERSION, "id": rid, "error": body}

    try:
        req = JsonRpcRequest.model_validate(request)
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return err(INVALID_REQUEST, f"invalid request: {e.error_count()} error(s)", details)
    try:
        result = call_method(methods, req.method, req.params)
    except RpcError as e:
        return err(e.code, e.message)
    except LedgerError as e:
        log.debug("rpc %s rejected: %s", req.method, e.code)
        return err(LEDGER_ERROR, e.message, e.to_dict())
    return {"jsonrpc": JSONRPC_VERSION, "id": req.id, "result": result}


def role_table() -> list:
    """Role names and ids, for clients that need the wire ids."""
    return [{"name": r.value, "label": r.label, "id": r.role_id_hex} for r in ROLE_ORDER]


__all__ = [
    "JSONRPC_VERSION",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "LEDGER_ERROR",
    "METHOD_PREFIX",
    "RpcError",
    "make_methods",
    "resolve_method",
    "call_method",
    "dispatch",
    "role_table",
]
