from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    records = getattr(request.app.state, "records", None)
    if records is None:
        return JSONResponse({"ok": False, "detail": "BACKEND_URL is not set"}, status_code=500)
    if await records.ping():
        return {"ok": True, "backend": records.base_url}
    return JSONResponse({"ok": False, "detail": "Backend unreachable"}, status_code=503)
