from __future__ import annotations

"""
politrans.rpc.mount
-------------------

FastAPI wiring for the campaign token ledger.

Typical usage:
    from politrans.rpc.mount import create_app
    from politrans.rpc.methods import TokenService
    app = create_app(TokenService(token))

    # or mount into an existing app
    app.include_router(build_rest_router(service), prefix="/campaign")

Endpoints
---------
GET  /token                              metadata + admin/paused/supply/ceiling
GET  /balances/{identity}
GET  /stakes/{identity}
GET  /allowances/{owner}/{spender}
GET  /events?kind=Transfer&since=0
POST /ops/{method}                       body = params object, caller = X-Caller
POST /rpc                                JSON-RPC 2.0 envelope, caller = X-Caller

The caller identity always comes from the ``X-Caller`` header. In a real
deployment that header is set by an authenticating proxy; this module does
not authenticate.

HTTP status for ledger errors (REST only): NotAuthorized → 403,
Paused → 423, anything else → 409. JSON-RPC always answers 200 and encodes
ledger errors as ``code = -32000 - <ledger code>``.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Body, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .. import logging as plog
from ..errors import ErrorCode
from ..version import __version__
from . import CALLER_HEADER, RPC_PREFIX
from .methods import MUTATING_METHODS, RpcParamError, TokenService, call_method, make_methods

log = plog.get_logger(__name__)

_STATUS_FOR_CODE = {
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.PAUSED: 423,
}

JSONRPC_LEDGER_BASE = -32000


# -----------------------------------------------------------------------------
# JSON-RPC envelope
# -----------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    model_config = ConfigDict(frozen=True)
    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    # Positional arrays are accepted here and answered with -32602 by the handler.
    params: Optional[Union[Dict[str, Any], List[Any]]] = None
    id: Optional[Union[int, str]] = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _qualified(method: str) -> str:
    return method if method.startswith(RPC_PREFIX + ".") else f"{RPC_PREFIX}.{method}"


def _status_for(result: Dict[str, Any]) -> int:
    if result.get("ok"):
        return 200
    code = ErrorCode(int(result["error"]["code"]))
    return _STATUS_FOR_CODE.get(code, 409)


def _rpc_result(rid: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rid, "result": result}


def _rpc_error(rid: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    err: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": rid, "error": err}


# -----------------------------------------------------------------------------
# Router
# -----------------------------------------------------------------------------


def build_rest_router(service: TokenService) -> APIRouter:
    """Return an APIRouter exposing the ledger over REST and JSON-RPC."""
    methods = make_methods(service)
    router = APIRouter()

    @router.get("/token")
    def http_info() -> Dict[str, Any]:
        return methods["token.info"]()

    @router.get("/balances/{identity}")
    def http_balance(identity: str) -> Dict[str, Any]:
        return methods["token.balanceOf"](identity=identity)

    @router.get("/stakes/{identity}")
    def http_stake(identity: str) -> Dict[str, Any]:
        return methods["token.stakedOf"](identity=identity)

    @router.get("/allowances/{owner}/{spender}")
    def http_allowance(owner: str, spender: str) -> Dict[str, Any]:
        return methods["token.allowance"](owner=owner, spender=spender)

    @router.get("/events")
    def http_events(
        kind: Optional[str] = None,
        since: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=1000),
    ) -> List[Dict[str, Any]]:
        items = service.token.events(kind=kind, since_seq=since)[:limit]
        return [e.to_dict() for e in items]

    @router.post("/ops/{method}")
    def http_op(
        method: str,
        params: Optional[Dict[str, Any]] = Body(None),
        caller: Optional[str] = Header(None, alias=CALLER_HEADER),
    ) -> JSONResponse:
        name = _qualified(method)
        if name not in MUTATING_METHODS:
            raise HTTPException(status_code=404, detail=f"unknown operation {method!r}")
        if not caller:
            raise HTTPException(status_code=401, detail=f"missing {CALLER_HEADER} header")
        plog.bind(caller=caller, op=name)
        try:
            result = call_method(methods, name, params, caller=caller)
        except RpcParamError as e:
            raise HTTPException(status_code=400, detail=e.to_dict()) from e
        status = _status_for(result)
        if status == 200:
            log.info("operation committed")
        else:
            log.info("operation rejected", extra={"code": result["error"]["name"]})
        return JSONResponse(status_code=status, content=result)

    @router.post("/rpc")
    def http_rpc(
        req: JsonRpcRequest,
        caller: Optional[str] = Header(None, alias=CALLER_HEADER),
    ) -> Dict[str, Any]:
        if req.method not in methods:
            return _rpc_error(req.id, -32601, "method not found")
        if req.method in MUTATING_METHODS and not caller:
            return _rpc_error(req.id, -32001, f"missing {CALLER_HEADER} header")
        if isinstance(req.params, list):
            return _rpc_error(req.id, RpcParamError.code, "params must be an object", {"param": None})
        plog.bind(caller=caller, op=req.method)
        try:
            result = call_method(methods, req.method, req.params, caller=caller)
        except RpcParamError as e:
            return _rpc_error(req.id, RpcParamError.code, str(e), {"param": e.param})
        if isinstance(result, dict) and result.get("ok") is False:
            err = result["error"]
            log.info("operation rejected", extra={"code": err["name"]})
            return _rpc_error(req.id, JSONRPC_LEDGER_BASE - int(err["code"]), err["name"], err)
        return _rpc_result(req.id, result)

    return router


def create_app(service: TokenService, *, title: str = "PoliTrans Campaign Token") -> FastAPI:
    """Build a standalone FastAPI app serving the ledger."""
    app = FastAPI(title=title, version=__version__)
    app.state.token_service = service

    @app.middleware("http")
    async def _trace(request: Request, call_next):
        with plog.trace_scope(request.headers.get("X-Request-Id")) as tid:
            plog.bind(component="rpc")
            response = await call_next(request)
            response.headers["X-Trace-Id"] = tid
            return response

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"ok": True, "version": __version__}

    app.include_router(build_rest_router(service), tags=["token"])
    return app


__all__ = ["build_rest_router", "create_app", "JsonRpcRequest"]
