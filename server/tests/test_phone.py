from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from genoi.core.phone import (
    ERROR_REQUIRED,
    ERROR_TOO_LONG,
    ERROR_TOO_SHORT,
    ERROR_UNRECOGNIZED,
    clean_phone_number,
    detect_country,
    format_phone_display,
    is_valid_whatsapp_number,
    validate_and_format_phone,
)
from genoi.main import app


def test_clean_phone_number_strips_formatting():
    assert clean_phone_number("+55 (11) 99573-6666") == "5511995736666"


@pytest.mark.parametrize(
    "phone, formatted, display, country",
    [
        ("+55 (11) 99573-6666", "5511995736666", "+55 11 99573-6666", "Brasil"),
        ("41765099123", "41765099123", "+41 76 509 9123", "Suíça"),
        ("1 202 555 0123", "12025550123", "+1 (202) 555-0123", "Estados Unidos"),
        ("447700900123", "447700900123", "+44 7700 900123", "Reino Unido"),
        ("33123456789", "33123456789", "+33 1 23 45 67 89", "França"),
        ("351912345678", "351912345678", "+35 1912345678", "Portugal"),
    ],
)
def test_validate_known_countries(phone, formatted, display, country):
    result = validate_and_format_phone(phone)
    assert result.is_valid is True
    assert result.formatted_number == formatted
    assert result.display_number == display
    assert result.country == country


def test_brazilian_number_without_country_code_is_fixed():
    result = validate_and_format_phone("(11) 99573-6666")
    assert result.is_valid is True
    assert result.formatted_number == "5511995736666"


def test_legacy_brazilian_mobile_gets_ninth_digit():
    result = validate_and_format_phone("11 3333-4444")
    assert result.is_valid is True
    assert result.formatted_number == "5511933334444"
    assert result.display_number == "+55 11 93333-4444"


@pytest.mark.parametrize(
    "phone, error",
    [
        ("", ERROR_REQUIRED),
        (None, ERROR_REQUIRED),
        ("1234", ERROR_TOO_SHORT),
        ("1234567890123456", ERROR_TOO_LONG),
        ("999999999999", ERROR_UNRECOGNIZED),
    ],
)
def test_invalid_numbers(phone, error):
    result = validate_and_format_phone(phone)
    assert result.is_valid is False
    assert result.error == error
    assert is_valid_whatsapp_number(phone) is False


def test_usa_pattern_shadows_canada():
    assert detect_country("14165550123") == "usa"


def test_format_phone_display_without_validation():
    assert format_phone_display("5511995736666") == "+55 11 99573-6666"
    assert format_phone_display("9999999999") == "+99 99999999"
    assert format_phone_display("12345") == "12345"
    assert format_phone_display("") == ""


def test_phone_validation_endpoint():
    client = TestClient(app)
    response = client.post("/api/v1/phone/validate", json={"phone": "+41 76 509 91 23"})
    assert response.status_code == 200
    body = response.json()
    assert body["is_valid"] is True
    assert body["display_number"] == "+41 76 509 9123"

    response = client.post("/api/v1/phone/validate", json={"phone": "12"})
    assert response.json()["is_valid"] is False
