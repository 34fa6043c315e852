from __future__ import annotations

import secrets
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.status import HTTP_401_UNAUTHORIZED

from genoi.core.settings import get_settings

basic_auth = HTTPBasic()


@dataclass(frozen=True)
class AdminPrincipal:
    username: str


def require_admin(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(basic_auth),
) -> AdminPrincipal:
    settings = get_settings()
    username_match = secrets.compare_digest(credentials.username, settings.admin_username)
    password_match = secrets.compare_digest(credentials.password, settings.admin_password)
    if username_match and password_match:
        principal = AdminPrincipal(username=settings.admin_username)
        request.state.admin_principal = principal
        return principal

    raise HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Basic"},
    )


__all__ = ["AdminPrincipal", "basic_auth", "require_admin"]
