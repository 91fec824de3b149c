"""Target agent endpoints: expose this process's runtime to remote orchestrators."""

from __future__ import annotations

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Body, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation
from pixell_loader.runtime.local import LocalRuntime


router = APIRouter()
logger = structlog.get_logger()


def _require_bearer(auth_header: str | None, secret: str | None) -> None:
    if not secret:
        return  # if not configured, skip auth for local dev
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")
    token = auth_header.split(" ", 1)[1]
    if token != secret:
        raise HTTPException(status_code=403, detail="Invalid agent secret")


def _runtime(req: Request) -> LocalRuntime:
    runtime = getattr(req.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("LocalRuntime not initialized")
    return runtime


@router.put("/files/{name}")
async def put_file(
    name: str,
    req: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Dict[str, Any]:
    _require_bearer(authorization, req.app.state.settings.agent_secret)
    content = await req.body()
    runtime = _runtime(req)
    result = await run_in_threadpool(
        runtime.invoke, Target.local(), Operation.WRITE_FILE, {"name": name, "content": content}
    )
    return {"result": result}


@router.post("/invoke/{operation}")
async def invoke(
    operation: Operation,
    req: Request,
    args: Dict[str, Any] = Body(default={}),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Dict[str, Any]:
    _require_bearer(authorization, req.app.state.settings.agent_secret)
    if operation == Operation.WRITE_FILE:
        raise HTTPException(status_code=400, detail="Upload artifacts with PUT /runtime/files/{name}")
    runtime = _runtime(req)
    result = await run_in_threadpool(runtime.invoke, Target.local(), operation, args)
    return {"result": result}


@router.get("/applications")
async def applications(req: Request) -> Dict[str, Any]:
    """Applications started by this runtime, in start order."""
    return {"applications": _runtime(req).started_applications}
