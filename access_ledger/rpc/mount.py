from __future__ import annotations

"""
access_ledger.rpc.mount
-----------------------

Helpers to mount the ledger RPC surface into an existing FastAPI app, or to
build a standalone app.

Typical usage:
    from fastapi import FastAPI
    from access_ledger.rpc.mount import mount_ledger
    app = FastAPI()
    mount_ledger(app, ledger, prefix="/acl")

Routes (under `prefix`):
    POST /rpc      JSON-RPC 2.0 (single request or batch)
    GET  /stats    getContractStats
    GET  /roles    role names and wire ids
    GET  /metrics  Prometheus exposition

The calling account is resolved by the environment, not by the ledger: when a
request omits `caller` from its params, the `X-Caller` header is used.

Ledger calls hold a lock and may block on sink I/O, so `/rpc` dispatches on
a worker thread and keeps the event loop free.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse

from access_ledger import metrics as _metrics
from access_ledger.ledger import AuthorizationLedger

from .methods import (INVALID_REQUEST, JSONRPC_VERSION, dispatch, make_methods,
                      role_table)

CALLER_HEADER = "X-Caller"

# Methods whose params carry the calling account.
_CALLER_METHODS = ("grantOrRevokeRole", "setBlacklist", "transferOwnership")


def _with_caller(req: Any, caller: Optional[str]) -> Any:
    if caller is None or not isinstance(req, dict):
        return req
    method = req.get("method")
    if not isinstance(method, str) or not method.endswith(_CALLER_METHODS):
        return req
    params = req.get("params")
    if params is None:
        params = {}
    if isinstance(params, dict) and "caller" not in params:
        req = dict(req)
        req["params"] = {**params, "caller": caller}
    return req


def _answer(methods: Dict[str, Any], body: Any, caller: Optional[str]) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    if isinstance(body, list):
        if not body:
            return {
                "jsonrpc": JSONRPC_VERSION,
                "id": None,
                "error": {"code": INVALID_REQUEST, "message": "empty batch"},
            }
        return [dispatch(methods, _with_caller(item, caller)) for item in body]
    return dispatch(methods, _with_caller(body, caller))


def build_router(ledger: AuthorizationLedger) -> APIRouter:
    """Return an APIRouter exposing the ledger."""
    router = APIRouter()
    methods = make_methods(ledger)

    @router.post("/rpc")
    async def rpc_endpoint(
        request: Request,
        x_caller: Optional[str] = Header(None, alias=CALLER_HEADER),
    ) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                {"jsonrpc": JSONRPC_VERSION, "id": None, "error": {"code": -32700, "message": "parse error"}}
            )
        payload = await asyncio.to_thread(_answer, methods, body, x_caller)
        return JSONResponse(payload)

    @router.get("/stats")
    def http_stats() -> Dict[str, int]:
        return ledger.get_contract_stats().to_dict()

    @router.get("/roles")
    def http_roles() -> List[Dict[str, str]]:
        return role_table()

    @router.get("/metrics")
    def http_metrics() -> Response:
        payload, content_type = _metrics.render_latest()
        return Response(content=payload, media_type=content_type)

    return router


def mount_ledger(app: FastAPI, ledger: AuthorizationLedger, *, prefix: str = "") -> None:
    """Mount the ledger endpoints under `prefix` on a FastAPI app."""
    app.include_router(build_router(ledger), prefix=prefix, tags=["access-ledger"])


def build_app(ledger: AuthorizationLedger, *, prefix: str = "") -> FastAPI:
    app = FastAPI(title="access-ledger")
    app.state.ledger = ledger
    mount_ledger(app, ledger, prefix=prefix)
    return app


__all__ = ["CALLER_HEADER", "build_router", "mount_ledger", "build_app"]
