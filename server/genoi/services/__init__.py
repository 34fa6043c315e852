from __future__ import annotations

from genoi.services.allowlist import AllowListService
from genoi.services.store import FirestoreAccessStore, SqlAccessStore, build_store

__all__ = [
    "AllowListService",
    "FirestoreAccessStore",
    "SqlAccessStore",
    "build_store",
]
