from __future__ import annotations

from genoi.core.decision import DEFAULT_IP_HEADERS
from genoi.core.settings import Settings


def test_settings_defaults():
    settings = Settings()
    assert settings.hardcoded_ips == ["127.0.0.1", "::1"]
    assert settings.ip_headers == list(DEFAULT_IP_HEADERS)
    assert settings.store_backend == "sql"


def test_settings_parse_comma_separated_env(monkeypatch):
    monkeypatch.setenv("GENOI_HARDCODED_IPS", "10.0.0.1, ::1 ,")
    monkeypatch.setenv("GENOI_IP_HEADERS", "CF-Connecting-IP, X-Forwarded-For")
    monkeypatch.setenv("GENOI_GATE_EXEMPT_PATHS", "")
    settings = Settings()
    assert settings.hardcoded_ips == ["10.0.0.1", "::1"]
    assert settings.ip_headers == ["cf-connecting-ip", "x-forwarded-for"]
    assert settings.gate_exempt_paths == []


def test_settings_empty_header_list_falls_back_to_defaults(monkeypatch):
    monkeypatch.setenv("GENOI_IP_HEADERS", "")
    assert Settings().ip_headers == list(DEFAULT_IP_HEADERS)
