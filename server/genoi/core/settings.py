from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from genoi.core.decision import DEFAULT_IP_HEADERS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GENOI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Gen.OI Access Gateway"
    environment: str = "development"
    sqlite_path: Path = Path("data/genoi.db")
    store_backend: Literal["sql", "firestore"] = "sql"
    firestore_project_id: Optional[str] = None
    firestore_api_key: Optional[str] = None
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    store_fetch_timeout_seconds: float = 5.0
    hardcoded_ips: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["127.0.0.1", "::1"])
    ip_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_IP_HEADERS))
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    gate_enabled: bool = False
    gate_exempt_paths: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["/api/v1/ping", "/api/v1/verify-ip"]
    )
    admin_username: str = "admin"
    admin_password: str = "change-me"

    @field_validator("hardcoded_ips", "cors_allow_origins", "gate_exempt_paths", mode="before")
    @classmethod
    def _parse_lists(cls, value):
        if isinstance(value, str):
            if not value.strip():
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ip_headers", mode="before")
    @classmethod
    def _parse_headers(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        headers = [item.strip().lower() for item in (value or []) if item and item.strip()]
        return headers or list(DEFAULT_IP_HEADERS)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return settings
