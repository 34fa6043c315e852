from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

import anyio
import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from genoi.core.decision import AccessStore, AuthorizationRecord, PublicAccessConfig
from genoi.core.settings import Settings
from genoi.db import PUBLIC_ACCESS_KEY, AllowedIP, SystemConfig
from genoi.db.session import SessionLocal

logger = logging.getLogger("access_store")

ALLOWED_IPS_COLLECTION = "allowedIPs"
SYSTEM_CONFIG_COLLECTION = "systemConfig"


class SqlAccessStore:
    """Read authorization data from the local SQL database."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def _load_allow_list(self) -> List[AuthorizationRecord]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(AllowedIP).where(AllowedIP.active.is_(True)).order_by(AllowedIP.id.asc())
            ).all()
            return [
                AuthorizationRecord(
                    id=str(row.id),
                    address=row.ip,
                    active=row.active,
                    description=row.description,
                    owner=row.added_by,
                    type=row.type,
                )
                for row in rows
            ]

    def _load_public_access(self) -> PublicAccessConfig:
        with self.session_factory() as session:
            config = session.get(SystemConfig, PUBLIC_ACCESS_KEY)
            if config is None:
                return PublicAccessConfig()
            return PublicAccessConfig(
                enabled=bool(config.enabled),
                enabled_by=config.enabled_by,
                enabled_at=config.enabled_at.isoformat() if config.enabled_at else None,
                reason=config.reason,
            )

    async def fetch_active_allow_list(self) -> List[AuthorizationRecord]:
        return await anyio.to_thread.run_sync(self._load_allow_list)

    async def fetch_public_access(self) -> PublicAccessConfig:
        return await anyio.to_thread.run_sync(self._load_public_access)


def _string_field(fields: dict[str, Any], name: str) -> Optional[str]:
    value = fields.get(name) or {}
    return value.get("stringValue")


def _bool_field(fields: dict[str, Any], name: str) -> Optional[bool]:
    value = fields.get(name) or {}
    return value.get("booleanValue")


class FirestoreAccessStore:
    """Read authorization data through the Firestore REST API."""

    def __init__(
        self,
        project_id: str,
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://firestore.googleapis.com/v1",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not project_id:
            raise ValueError("firestore_project_required")
        self.project_id = project_id
        self.api_key = api_key
        self.documents_url = f"{base_url.rstrip('/')}/projects/{project_id}/databases/(default)/documents"
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        params = {"key": self.api_key} if self.api_key else None
        return httpx.AsyncClient(timeout=self.timeout, params=params, transport=self.transport)

    async def fetch_active_allow_list(self) -> List[AuthorizationRecord]:
        query = {
            "structuredQuery": {
                "from": [{"collectionId": ALLOWED_IPS_COLLECTION}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "active"},
                        "op": "EQUAL",
                        "value": {"booleanValue": True},
                    }
                },
            }
        }
        async with self._client() as client:
            response = await client.post(f"{self.documents_url}:runQuery", json=query)
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, list):
            return []

        records: List[AuthorizationRecord] = []
        for item in payload:
            document = item.get("document") if isinstance(item, dict) else None
            if not document:
                continue
            fields = document.get("fields") or {}
            ip = _string_field(fields, "ip")
            active = _bool_field(fields, "active")
            if not ip or active is False:
                continue
            records.append(
                AuthorizationRecord(
                    id=(document.get("name") or "").rsplit("/", 1)[-1] or None,
                    address=ip,
                    active=True,
                    description=_string_field(fields, "description"),
                    owner=_string_field(fields, "addedBy"),
                    type=_string_field(fields, "type"),
                )
            )
        logger.debug("Loaded allowed IPs from Firestore", extra={"count": len(records)})
        return records

    async def fetch_public_access(self) -> PublicAccessConfig:
        url = f"{self.documents_url}/{SYSTEM_CONFIG_COLLECTION}/{PUBLIC_ACCESS_KEY}"
        async with self._client() as client:
            response = await client.get(url)
        if response.status_code == 404:
            return PublicAccessConfig()
        response.raise_for_status()

        fields = response.json().get("fields") or {}
        return PublicAccessConfig(
            enabled=bool(_bool_field(fields, "enabled")),
            enabled_by=_string_field(fields, "enabledBy"),
            enabled_at=_string_field(fields, "enabledAt"),
            reason=_string_field(fields, "reason"),
        )


def build_store(settings: Settings, session_factory: Optional[Callable[[], Session]] = None) -> AccessStore:
    if settings.store_backend == "firestore":
        return FirestoreAccessStore(
            settings.firestore_project_id or "",
            api_key=settings.firestore_api_key,
            base_url=settings.firestore_base_url,
            timeout=settings.store_fetch_timeout_seconds,
        )
    return SqlAccessStore(session_factory or SessionLocal)


__all__ = ["FirestoreAccessStore", "SqlAccessStore", "build_store"]
