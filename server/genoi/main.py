from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from genoi.api import admin
from genoi.api.public import router
from genoi.core.decision import AccessDecisionEngine
from genoi.core.settings import Settings, get_settings
from genoi.db.base import Base
from genoi.db.session import engine
from genoi.middleware.access_control import AccessControlMiddleware
from genoi.services.store import build_store

logger = logging.getLogger("access_control")

settings = get_settings()


def build_access_engine(config: Settings) -> AccessDecisionEngine:
    return AccessDecisionEngine(
        build_store(config),
        hardcoded_allow_list=config.hardcoded_ips,
        header_order=config.ip_headers,
        fetch_timeout=config.store_fetch_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Access gateway started",
        extra={"store_backend": settings.store_backend, "gate_enabled": settings.gate_enabled},
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.state.access_engine = build_access_engine(settings)

if settings.gate_enabled:
    app.add_middleware(
        AccessControlMiddleware,
        allow_paths=settings.gate_exempt_paths,
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")
app.include_router(admin.router, prefix="/admin")
