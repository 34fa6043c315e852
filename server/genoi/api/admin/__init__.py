from __future__ import annotations

from fastapi import APIRouter

from . import allowed_ips

router = APIRouter(prefix="/api", tags=["admin"])
router.include_router(allowed_ips.router)

__all__ = ["router"]
