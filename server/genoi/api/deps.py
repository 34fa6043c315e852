from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from genoi.core.decision import AccessDecisionEngine
from genoi.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_access_engine(request: Request) -> AccessDecisionEngine:
    return request.app.state.access_engine
