from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from genoi.core.addresses import EntryKind, canonicalize, classify_entry, comparable_form
from genoi.db import PUBLIC_ACCESS_KEY, AllowedIP, SystemConfig

logger = logging.getLogger("access_control")


class AllowListService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def validate_format(self, ip: Optional[str]) -> EntryKind:
        value = (ip or "").strip()
        if not value:
            raise ValueError("ip_required")
        kind = classify_entry(value)
        if kind is EntryKind.INVALID:
            raise ValueError("ip_invalid")
        return kind

    def _canonical_value(self, value: str, kind: EntryKind) -> str:
        if kind.is_range:
            address, _, prefix = value.partition("/")
            return f"{canonicalize(address.strip())}/{int(prefix.strip())}"
        form = comparable_form(value)
        if form is None:
            raise ValueError("ip_invalid")
        return form[1]

    def list_entries(self, *, active_only: bool = False) -> List[AllowedIP]:
        stmt = select(AllowedIP)
        if active_only:
            stmt = stmt.where(AllowedIP.active.is_(True))
        stmt = stmt.order_by(AllowedIP.added_at.desc(), AllowedIP.id.desc())
        return list(self.db.scalars(stmt).all())

    def get_entry(self, entry_id: int) -> Optional[AllowedIP]:
        return self.db.get(AllowedIP, entry_id)

    def add_entry(self, ip: str, description: Optional[str], added_by: str) -> AllowedIP:
        kind = self.validate_format(ip)
        value = ip.strip()
        actor = (added_by or "").strip()
        if not actor:
            raise ValueError("actor_required")

        canonical = self._canonical_value(value, kind)
        existing = self.db.scalar(select(AllowedIP).where(AllowedIP.canonical == canonical))
        if existing:
            raise ValueError("ip_exists")

        entry = AllowedIP(
            ip=value,
            canonical=canonical,
            type=kind.value,
            description=(description or "").strip() or None,
            added_by=actor,
            active=True,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(
            "Added allowed IP",
            extra={"id": entry.id, "ip": value, "type": kind.value, "added_by": actor},
        )
        return entry

    def update_entry(
        self,
        entry_id: int,
        *,
        description: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> AllowedIP:
        entry = self.get_entry(entry_id)
        if not entry:
            raise ValueError("entry_not_found")

        changed = False
        if description is not None:
            entry.description = description.strip() or None
            changed = True
        if active is not None and bool(active) != entry.active:
            entry.active = bool(active)
            changed = True

        if not changed:
            return entry

        self.db.commit()
        self.db.refresh(entry)
        logger.info(
            "Updated allowed IP",
            extra={"id": entry.id, "ip": entry.ip, "active": entry.active},
        )
        return entry

    def remove_entry(self, entry_id: int) -> None:
        entry = self.get_entry(entry_id)
        if not entry:
            raise ValueError("entry_not_found")
        ip = entry.ip
        self.db.delete(entry)
        self.db.commit()
        logger.info("Removed allowed IP", extra={"id": entry_id, "ip": ip})

    def get_public_access(self) -> SystemConfig:
        config = self.db.get(SystemConfig, PUBLIC_ACCESS_KEY)
        if config is None:
            return SystemConfig(key=PUBLIC_ACCESS_KEY, enabled=False)
        return config

    def update_public_access(self, enabled: bool, enabled_by: str, reason: Optional[str] = None) -> SystemConfig:
        actor = (enabled_by or "").strip()
        if not actor:
            raise ValueError("actor_required")

        config = self.db.get(SystemConfig, PUBLIC_ACCESS_KEY)
        if config is None:
            config = SystemConfig(key=PUBLIC_ACCESS_KEY)
            self.db.add(config)
        config.enabled = bool(enabled)
        config.enabled_by = actor
        config.enabled_at = datetime.now(timezone.utc)
        config.reason = (reason or "").strip() or None
        self.db.commit()
        self.db.refresh(config)
        logger.warning(
            "Public access updated",
            extra={"enabled": config.enabled, "enabled_by": actor, "reason": config.reason},
        )
        return config
