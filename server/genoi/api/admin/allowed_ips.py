from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from genoi.api.deps import get_db
from genoi.schemas import (
    AllowedIPCreateRequest,
    AllowedIPListResponse,
    AllowedIPResponse,
    AllowedIPUpdateRequest,
    IPFormatRequest,
    IPFormatResponse,
    PublicAccessResponse,
    PublicAccessUpdateRequest,
)
from genoi.services.allowlist import AllowListService

from .auth import AdminPrincipal, require_admin

router = APIRouter()

_BAD_REQUEST_CODES = {"ip_required", "ip_invalid", "actor_required"}


def _raise_for_code(exc: ValueError) -> None:
    code = str(exc)
    if code == "entry_not_found":
        raise HTTPException(status_code=404, detail=code)
    if code == "ip_exists":
        raise HTTPException(status_code=409, detail=code)
    if code in _BAD_REQUEST_CODES:
        raise HTTPException(status_code=400, detail=code)
    raise exc


@router.get("/allowed-ips", response_model=AllowedIPListResponse)
def api_list_allowed_ips(
    active_only: bool = False,
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    items = AllowListService(db).list_entries(active_only=active_only)
    return {"items": [AllowedIPResponse.model_validate(item) for item in items], "total": len(items)}


@router.post("/allowed-ips", response_model=AllowedIPResponse, status_code=201)
def api_add_allowed_ip(
    payload: AllowedIPCreateRequest,
    db: Session = Depends(get_db),
    principal: AdminPrincipal = Depends(require_admin),
):
    try:
        return AllowListService(db).add_entry(payload.ip, payload.description, principal.username)
    except ValueError as exc:
        _raise_for_code(exc)


@router.post("/allowed-ips/validate", response_model=IPFormatResponse)
def api_validate_ip_format(
    payload: IPFormatRequest,
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    try:
        kind = AllowListService(db).validate_format(payload.ip)
    except ValueError as exc:
        return IPFormatResponse(valid=False, error=str(exc))
    return IPFormatResponse(valid=True, type=kind.value)


@router.get("/allowed-ips/{entry_id}", response_model=AllowedIPResponse)
def api_get_allowed_ip(
    entry_id: int,
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    entry = AllowListService(db).get_entry(entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="entry_not_found")
    return entry


@router.patch("/allowed-ips/{entry_id}", response_model=AllowedIPResponse)
def api_update_allowed_ip(
    entry_id: int,
    payload: AllowedIPUpdateRequest,
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    try:
        return AllowListService(db).update_entry(
            entry_id,
            description=payload.description,
            active=payload.active,
        )
    except ValueError as exc:
        _raise_for_code(exc)


@router.delete("/allowed-ips/{entry_id}", status_code=204)
def api_remove_allowed_ip(
    entry_id: int,
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    try:
        AllowListService(db).remove_entry(entry_id)
    except ValueError as exc:
        _raise_for_code(exc)
    return Response(status_code=204)


@router.get("/public-access", response_model=PublicAccessResponse)
def api_get_public_access(
    db: Session = Depends(get_db),
    _: AdminPrincipal = Depends(require_admin),
):
    return AllowListService(db).get_public_access()


@router.put("/public-access", response_model=PublicAccessResponse)
def api_update_public_access(
    payload: PublicAccessUpdateRequest,
    db: Session = Depends(get_db),
    principal: AdminPrincipal = Depends(require_admin),
):
    try:
        return AllowListService(db).update_public_access(payload.enabled, principal.username, payload.reason)
    except ValueError as exc:
        _raise_for_code(exc)
