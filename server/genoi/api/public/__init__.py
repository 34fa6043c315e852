from __future__ import annotations

from fastapi import APIRouter

from . import health, phone, verify

router = APIRouter()
router.include_router(verify.router)
router.include_router(phone.router)
router.include_router(health.router)

__all__ = ["router"]
