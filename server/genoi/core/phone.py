"""Validation and display formatting for WhatsApp phone numbers.

Numbers are handled as bare digit strings with the country code first
(``5511995736666``). Brazilian numbers typed without the country code, or
in the old eight-digit mobile format, are corrected before validation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("phone_validation")

# Order matters: the first matching pattern wins (USA shadows Canada).
PHONE_PATTERNS: dict[str, re.Pattern[str]] = {
    "brazil": re.compile(r"^55[1-9][1-9]\d{8,9}$"),
    "switzerland": re.compile(r"^41[1-9]\d{8}$"),
    "usa": re.compile(r"^1[2-9]\d{9}$"),
    "uk": re.compile(r"^44[1-9]\d{9,10}$"),
    "france": re.compile(r"^33[1-9]\d{8}$"),
    "germany": re.compile(r"^49[1-9]\d{10,11}$"),
    "italy": re.compile(r"^393\d{9}$"),
    "spain": re.compile(r"^34[6-9]\d{8}$"),
    "argentina": re.compile(r"^549[1-9]\d{9,10}$"),
    "mexico": re.compile(r"^52[1-9]\d{9,10}$"),
    "canada": re.compile(r"^1[2-9]\d{9}$"),
    "australia": re.compile(r"^614\d{8}$"),
    "japan": re.compile(r"^81[7-9]\d{9,10}$"),
    "china": re.compile(r"^861\d{10}$"),
    "india": re.compile(r"^91[6-9]\d{9}$"),
    "portugal": re.compile(r"^3519\d{8}$"),
    "chile": re.compile(r"^569\d{8}$"),
    "colombia": re.compile(r"^573\d{9}$"),
    "peru": re.compile(r"^519\d{8}$"),
    "uruguay": re.compile(r"^5989\d{7}$"),
    "paraguay": re.compile(r"^5959\d{8}$"),
}

COUNTRY_NAMES = {
    "brazil": "Brasil",
    "switzerland": "Suíça",
    "usa": "Estados Unidos",
    "uk": "Reino Unido",
    "france": "França",
    "germany": "Alemanha",
    "italy": "Itália",
    "spain": "Espanha",
    "argentina": "Argentina",
    "mexico": "México",
    "canada": "Canadá",
    "australia": "Austrália",
    "japan": "Japão",
    "china": "China",
    "india": "Índia",
    "portugal": "Portugal",
    "chile": "Chile",
    "colombia": "Colômbia",
    "peru": "Peru",
    "uruguay": "Uruguai",
    "paraguay": "Paraguai",
}

MIN_DIGITS = 8
MAX_DIGITS = 15

ERROR_REQUIRED = "Número de telefone é obrigatório"
ERROR_TOO_SHORT = "Número muito curto. Mínimo 8 dígitos."
ERROR_TOO_LONG = "Número muito longo. Máximo 15 dígitos."
ERROR_UNRECOGNIZED = (
    "Formato de número não reconhecido. Exemplos válidos: "
    "Brasil: 5511995736666; Suíça: 41765099123; EUA: 12345678901; "
    "Reino Unido: 447700900123. Certifique-se de incluir o código do país."
)

_NON_DIGITS = re.compile(r"\D")
_BR_LOCAL = re.compile(r"^[1-9][1-9]\d{8,9}$")
_BR_LEGACY = re.compile(r"^[1-9][1-9]\d{8}$")


@dataclass(frozen=True)
class PhoneValidationResult:
    is_valid: bool
    formatted_number: Optional[str] = None
    display_number: Optional[str] = None
    country: Optional[str] = None
    error: Optional[str] = None


def clean_phone_number(phone: str) -> str:
    return _NON_DIGITS.sub("", phone or "")


def detect_country(digits: str) -> Optional[str]:
    for country, pattern in PHONE_PATTERNS.items():
        if pattern.match(digits):
            return country
    return None


def _format_brazilian(digits: str) -> str:
    # 5511995736666 -> +55 11 99573-6666
    return f"+{digits[:2]} {digits[2:4]} {digits[4:9]}-{digits[9:]}"


def _format_international(digits: str, country: str) -> str:
    if country == "switzerland":
        return f"+{digits[:2]} {digits[2:4]} {digits[4:7]} {digits[7:]}"
    if country in {"usa", "canada"}:
        return f"+{digits[:1]} ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    if country == "uk":
        return f"+{digits[:2]} {digits[2:6]} {digits[6:]}"
    if country == "france":
        return f"+{digits[:2]} {digits[2:3]} {digits[3:5]} {digits[5:7]} {digits[7:9]} {digits[9:]}"
    if country == "germany":
        return f"+{digits[:2]} {digits[2:5]} {digits[5:]}"
    return f"+{digits[:2]} {digits[2:]}"


def _format_for_country(digits: str, country: str) -> str:
    if country == "brazil":
        return _format_brazilian(digits)
    return _format_international(digits, country)


def _fix_brazilian_number(digits: str) -> Optional[str]:
    if len(digits) == 11 and _BR_LOCAL.match(digits):
        return "55" + digits
    if len(digits) == 10 and _BR_LEGACY.match(digits):
        # legacy mobile number without the leading 9
        return "55" + digits[:2] + "9" + digits[2:]
    if len(digits) == 13 and digits.startswith("55"):
        return digits
    return None


def validate_and_format_phone(phone: Optional[str]) -> PhoneValidationResult:
    if not phone or not isinstance(phone, str):
        return PhoneValidationResult(is_valid=False, error=ERROR_REQUIRED)

    digits = clean_phone_number(phone)
    if len(digits) < MIN_DIGITS:
        return PhoneValidationResult(is_valid=False, error=ERROR_TOO_SHORT)
    if len(digits) > MAX_DIGITS:
        return PhoneValidationResult(is_valid=False, error=ERROR_TOO_LONG)

    country = detect_country(digits)
    if country is None:
        fixed = _fix_brazilian_number(digits)
        if fixed:
            digits = fixed
            country = detect_country(digits)

    if country is None:
        logger.debug("Unrecognized phone number format", extra={"digits": len(digits)})
        return PhoneValidationResult(is_valid=False, error=ERROR_UNRECOGNIZED)

    return PhoneValidationResult(
        is_valid=True,
        formatted_number=digits,
        display_number=_format_for_country(digits, country),
        country=COUNTRY_NAMES.get(country, country),
    )


def format_phone_display(phone: Optional[str]) -> str:
    """Format a number for display without validating it."""
    if not phone:
        return ""
    digits = clean_phone_number(phone)
    country = detect_country(digits)
    if country:
        return _format_for_country(digits, country)
    if len(digits) >= 10:
        return f"+{digits[:2]} {digits[2:]}"
    return phone


def is_valid_whatsapp_number(phone: Optional[str]) -> bool:
    return validate_and_format_phone(phone).is_valid


__all__ = [
    "PhoneValidationResult",
    "clean_phone_number",
    "detect_country",
    "format_phone_display",
    "is_valid_whatsapp_number",
    "validate_and_format_phone",
]
