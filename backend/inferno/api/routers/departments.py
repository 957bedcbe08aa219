from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from inferno.api.deps import get_records
from inferno.infra.backend.records_client import BackendError, RecordsClient

router = APIRouter(tags=["departments"])


def backend_http_error(exc: BackendError) -> HTTPException:
    if exc.status_code == 404:
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


def _passthrough(status_code: int, body: Any) -> JSONResponse:
    # 204 no admite cuerpo; el resumen {"ok": ...} sale como 200
    if status_code == 204:
        status_code = 200
    return JSONResponse(status_code=status_code, content=body)


@router.get("/departments")
async def list_departments(records: RecordsClient = Depends(get_records)):
    try:
        return await records.list_departments_raw()
    except BackendError as exc:
        raise backend_http_error(exc) from exc


@router.post("/departments")
async def create_department(
    payload: Dict[str, Any] = Body(...),
    records: RecordsClient = Depends(get_records),
):
    try:
        status_code, body = await records.create_department(payload)
    except BackendError as exc:
        raise backend_http_error(exc) from exc
    return _passthrough(status_code, body)


@router.get("/departments/{department_id}")
async def get_department(department_id: int, records: RecordsClient = Depends(get_records)):
    try:
        return await records.get_department_raw(department_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc


@router.delete("/departments/{department_id}")
async def delete_department(department_id: int, records: RecordsClient = Depends(get_records)):
    try:
        status_code, body = await records.delete_department(department_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc
    return _passthrough(status_code, body)


@router.get("/departments/{department_id}/incidents")
async def list_department_incidents(department_id: int, records: RecordsClient = Depends(get_records)):
    try:
        return await records.list_incidents_raw(department_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc


@router.post("/departments/{department_id}/incidents")
async def create_department_incident(
    department_id: int,
    payload: Dict[str, Any] = Body(...),
    records: RecordsClient = Depends(get_records),
):
    try:
        status_code, body = await records.create_incident(department_id, payload)
    except BackendError as exc:
        raise backend_http_error(exc) from exc
    return _passthrough(status_code, body)


@router.get("/incidents/{incident_id}")
async def get_incident(incident_id: int, records: RecordsClient = Depends(get_records)):
    try:
        return await records.get_incident_raw(incident_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc
