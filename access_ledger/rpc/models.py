"""
JSON-RPC 2.0 envelopes for the ledger endpoint.

Only the envelope is modeled here; method params stay plain keyword mappings
and are checked by the method callables themselves.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class JsonRpcRequest(BaseModel):
    model_config = ConfigDict(frozen=True, str_max_length=1_000_000)
    jsonrpc: Literal["2.0"] = "2.0"
    method: str = Field(min_length=1)
    params: Optional[Union[Dict[str, Any], List[Any]]] = None
    id: Optional[Union[int, str]] = None


class JsonRpcError(BaseModel):
    model_config = ConfigDict(frozen=True)
    code: int
    message: str
    data: Optional[Any] = None


__all__ = ["JsonRpcRequest", "JsonRpcError"]
