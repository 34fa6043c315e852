from genoi.db.base import Base
from genoi.db.models import PUBLIC_ACCESS_KEY, AllowedIP, SystemConfig

__all__ = [
    "Base",
    "AllowedIP",
    "SystemConfig",
    "PUBLIC_ACCESS_KEY",
]
