from __future__ import annotations

import os
import tempfile
from pathlib import Path

os.environ.setdefault("GENOI_SQLITE_PATH", str(Path(tempfile.mkdtemp(prefix="genoi-tests-")) / "genoi.db"))

import pytest

from genoi.core.settings import get_settings
from genoi.db.base import Base
from genoi.db.session import engine
import genoi.db.models  # noqa: F401  # ensure models are registered
from genoi.main import app


@pytest.fixture(autouse=True)
def reset_database():
    settings = get_settings()
    original_engine = app.state.access_engine
    original_hardcoded = list(settings.hardcoded_ips)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        app.state.access_engine = original_engine
        settings.hardcoded_ips = list(original_hardcoded)
