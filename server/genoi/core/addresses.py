from __future__ import annotations

import ipaddress
import logging
import re
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple, Union

logger = logging.getLogger("access_control")

NetworkType = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_IPV4_PATTERN = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")
_HEX_GROUP = r"[0-9a-f]{1,4}"
_IPV6_PATTERNS = (
    re.compile(rf"^({_HEX_GROUP}:){{7}}{_HEX_GROUP}$", re.IGNORECASE),
    re.compile(r"^::1$"),
    re.compile(r"^::$"),
    re.compile(rf"^({_HEX_GROUP}:){{1,7}}:$", re.IGNORECASE),
    re.compile(rf"^:(:{_HEX_GROUP}){{1,7}}$", re.IGNORECASE),
    re.compile(rf"^({_HEX_GROUP}:){{1,6}}(:{_HEX_GROUP}){{1,6}}$", re.IGNORECASE),
)
_IPV4_MAPPED_PREFIX = "::ffff:"
_IPV6_PERMISSIVE_CHARS = re.compile(r"^[0-9a-f:.]+$", re.IGNORECASE)


class AddressClass(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    INVALID = "invalid"


class EntryKind(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    IPV4_RANGE = "ipv4_range"
    IPV6_RANGE = "ipv6_range"
    INVALID = "invalid"

    @property
    def is_range(self) -> bool:
        return self in {EntryKind.IPV4_RANGE, EntryKind.IPV6_RANGE}


def _is_ipv4(value: str) -> bool:
    match = _IPV4_PATTERN.match(value)
    if not match:
        return False
    return all(0 <= int(octet) <= 255 for octet in match.groups())


def _is_ipv6(value: str) -> bool:
    if any(pattern.match(value) for pattern in _IPV6_PATTERNS):
        return True
    lowered = value.lower()
    if lowered.startswith(_IPV4_MAPPED_PREFIX) and _is_ipv4(lowered[len(_IPV4_MAPPED_PREFIX):]):
        return True
    # Anything else carrying a "::" compression is accepted as long as it only
    # uses address characters.
    return "::" in value and bool(_IPV6_PERMISSIVE_CHARS.match(value))


def classify(raw: Optional[str]) -> AddressClass:
    """Classify a raw address string as IPv4, IPv6 or invalid."""
    if raw is None:
        return AddressClass.INVALID
    value = str(raw).strip()
    if not value:
        return AddressClass.INVALID
    if _is_ipv4(value):
        return AddressClass.IPV4
    if _is_ipv6(value):
        return AddressClass.IPV6
    return AddressClass.INVALID


def _expand_ipv6(value: str) -> str:
    if value.startswith(_IPV4_MAPPED_PREFIX):
        embedded = value[len(_IPV4_MAPPED_PREFIX):]
        if _is_ipv4(embedded):
            return embedded

    if "::" in value:
        left_raw, _, right_raw = value.partition("::")
        left = [part for part in left_raw.split(":") if part]
        right = [part for part in right_raw.split(":") if part]
        missing = max(8 - len(left) - len(right), 0)
        groups = left + ["0000"] * missing + right
        return ":".join(group.rjust(4, "0") for group in groups)

    groups = value.split(":")
    if len(groups) == 8:
        return ":".join(group.rjust(4, "0") for group in groups)
    return value


def canonicalize(raw: str, address_class: Optional[AddressClass] = None) -> str:
    """Return the canonical comparable form of a valid address.

    IPv4 addresses are returned trimmed. IPv6 addresses are lowercased and
    expanded to eight zero-padded groups; an IPv4-mapped address
    (``::ffff:a.b.c.d``) collapses to its embedded IPv4 dotted quad.
    """

    if address_class is None:
        address_class = classify(raw)
    if address_class is AddressClass.INVALID:
        raise ValueError("ip_invalid")

    value = str(raw).strip()
    if address_class is AddressClass.IPV4:
        return value
    return _expand_ipv6(value.lower())


def comparable_form(raw: Optional[str]) -> Optional[Tuple[AddressClass, str]]:
    """Return ``(class, canonical)`` with the class taken after canonicalization.

    ``None`` is returned for invalid input.
    """

    address_class = classify(raw)
    if address_class is AddressClass.INVALID:
        return None
    canonical = canonicalize(raw, address_class)
    if address_class is AddressClass.IPV6 and ":" not in canonical:
        address_class = AddressClass.IPV4
    return address_class, canonical


def equals(a: Optional[str], b: Optional[str]) -> bool:
    left = comparable_form(a)
    right = comparable_form(b)
    if left is None or right is None:
        return False
    return left == right


def _split_range(value: str) -> Optional[Tuple[str, int]]:
    address, _, prefix = value.partition("/")
    address = address.strip()
    prefix = prefix.strip()
    if not address or not prefix.isdigit():
        return None
    return address, int(prefix)


def classify_entry(raw: Optional[str]) -> EntryKind:
    """Classify an allow-list entry, which may be a single address or a CIDR range."""
    if raw is None:
        return EntryKind.INVALID
    value = str(raw).strip()
    if "/" not in value:
        address_class = classify(value)
        if address_class is AddressClass.IPV4:
            return EntryKind.IPV4
        if address_class is AddressClass.IPV6:
            return EntryKind.IPV6
        return EntryKind.INVALID

    parts = _split_range(value)
    if parts is None:
        return EntryKind.INVALID
    address, prefix = parts
    address_class = classify(address)
    if address_class is AddressClass.IPV4 and prefix <= 32:
        return EntryKind.IPV4_RANGE
    if address_class is AddressClass.IPV6 and prefix <= 128:
        return EntryKind.IPV6_RANGE
    return EntryKind.INVALID


def _network_text(raw: str) -> str:
    form = comparable_form(raw)
    if form is None:
        raise ValueError("ip_invalid")
    address_class, canonical = form
    if address_class is AddressClass.IPV4:
        # ipaddress rejects zero-padded octets
        return ".".join(str(int(octet)) for octet in canonical.split("."))
    return canonical


@lru_cache(maxsize=256)
def _compile_network(entry: str) -> Optional[NetworkType]:
    parts = _split_range(entry)
    if parts is None:
        return None
    address, prefix = parts
    try:
        return ipaddress.ip_network(f"{_network_text(address)}/{prefix}", strict=False)
    except ValueError:
        logger.warning("Skipping invalid IP range entry", extra={"entry": entry})
        return None


def _in_range(candidate: str, entry: str) -> bool:
    network = _compile_network(entry.strip())
    if network is None:
        return False
    try:
        address = ipaddress.ip_address(_network_text(candidate))
    except ValueError:
        return False
    return address in network


def matches(candidate: Optional[str], entry: Optional[str]) -> bool:
    """Return True when ``candidate`` is the address named by ``entry`` or lies in its range."""
    if not candidate or not entry:
        return False
    kind = classify_entry(entry)
    if kind is EntryKind.INVALID:
        return False
    if kind.is_range:
        return _in_range(candidate, entry)
    return equals(candidate, entry)


__all__ = [
    "AddressClass",
    "EntryKind",
    "canonicalize",
    "classify",
    "classify_entry",
    "comparable_form",
    "equals",
    "matches",
]
