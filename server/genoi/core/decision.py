from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Protocol, Sequence

import anyio

from genoi.core.addresses import AddressClass, classify, classify_entry, matches

logger = logging.getLogger("access_control")

DEFAULT_IP_HEADERS: tuple[str, ...] = (
    "x-nf-client-connection-ip",
    "x-forwarded-for",
    "x-real-ip",
    "x-client-ip",
    "cf-connecting-ip",
    "true-client-ip",
    "x-cluster-client-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
)

FALLBACK_SOURCE = "connection"
HARDCODED_SOURCE = "hardcoded"
FORWARDED_HEADERS = frozenset({"forwarded", "x-forwarded"})


class ReasonCode(str, Enum):
    IP_NOT_DETECTED = "IP_NOT_DETECTED"
    IP_NOT_AUTHORIZED = "IP_NOT_AUTHORIZED"
    PUBLIC_ACCESS_ENABLED = "PUBLIC_ACCESS_ENABLED"
    HARDCODED_IP = "HARDCODED_IP"
    FIREBASE_IP = "FIREBASE_IP"
    INVALID_IP_FORMAT = "INVALID_IP_FORMAT"
    VERIFICATION_ERROR = "VERIFICATION_ERROR"


REASON_MESSAGES = {
    ReasonCode.IP_NOT_DETECTED: "Não foi possível detectar seu endereço IP",
    ReasonCode.IP_NOT_AUTHORIZED: "Seu endereço IP não está autorizado a acessar esta plataforma",
    ReasonCode.PUBLIC_ACCESS_ENABLED: "Acesso público habilitado",
    ReasonCode.HARDCODED_IP: "IP autorizado (lista fixa)",
    ReasonCode.FIREBASE_IP: "IP autorizado (lista de IPs permitidos)",
    ReasonCode.INVALID_IP_FORMAT: "Formato de IP inválido",
    ReasonCode.VERIFICATION_ERROR: "Erro interno na verificação de IP",
}


class DecisionUnavailable(RuntimeError):
    """Raised when an access decision could not be evaluated.

    This is never a deny: callers must treat it as "unknown".
    """


@dataclass(frozen=True)
class CandidateAddress:
    value: str
    source: str
    address_class: AddressClass


@dataclass(frozen=True)
class AuthorizationRecord:
    address: str
    active: bool = True
    description: Optional[str] = None
    owner: Optional[str] = None
    type: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class PublicAccessConfig:
    enabled: bool = False
    enabled_by: Optional[str] = None
    enabled_at: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: ReasonCode
    candidates: tuple[CandidateAddress, ...] = ()
    matched_record: Optional[AuthorizationRecord] = None

    @property
    def primary_address(self) -> Optional[str]:
        return self.candidates[0].value if self.candidates else None

    @property
    def ip_type(self) -> Optional[str]:
        return self.candidates[0].address_class.value if self.candidates else None

    @property
    def all_addresses(self) -> List[str]:
        return [candidate.value for candidate in self.candidates]

    @property
    def matched_ip(self) -> Optional[str]:
        return self.matched_record.address if self.matched_record else None

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self.reason]


class AccessStore(Protocol):
    """Read access to the externally managed authorization data."""

    async def fetch_active_allow_list(self) -> Sequence[AuthorizationRecord]:
        ...

    async def fetch_public_access(self) -> PublicAccessConfig:
        ...


def _lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    lowered: dict[str, str] = {}
    for key, value in headers.items():
        lowered.setdefault(str(key).lower(), value)
    return lowered


def _unwrap_forwarded(segment: str) -> str:
    """Pull the client address out of an RFC 7239 ``for=`` parameter."""
    value = segment
    for pair in segment.split(";"):
        name, sep, param = pair.partition("=")
        if sep and name.strip().lower() == "for":
            value = param.strip()
            break
    value = value.strip().strip('"')
    if value.startswith("["):
        return value[1:].split("]", 1)[0]
    if value.count(":") == 1:
        return value.split(":", 1)[0]
    return value


def extract_candidates(
    headers: Optional[Mapping[str, str]],
    fallback_address: Optional[str] = None,
    header_order: Iterable[str] = DEFAULT_IP_HEADERS,
) -> List[CandidateAddress]:
    """Collect every valid client address carried by the request.

    Every header in ``header_order`` contributes at most its first
    comma-separated entry; invalid and duplicate values are dropped. The
    connection-level ``fallback_address`` is appended last.
    """

    lowered = _lower_headers(headers or {})
    seen: set[str] = set()
    candidates: List[CandidateAddress] = []

    for header in header_order:
        header = header.lower()
        raw = lowered.get(header)
        if not raw:
            continue
        value = str(raw).split(",", 1)[0].strip()
        if header in FORWARDED_HEADERS:
            value = _unwrap_forwarded(value)
        if not value or value.lower() == "unknown":
            continue
        address_class = classify(value)
        if address_class is AddressClass.INVALID:
            logger.debug("Ignoring invalid address header", extra={"header": header, "value": value})
            continue
        if value in seen:
            continue
        seen.add(value)
        candidates.append(CandidateAddress(value=value, source=header, address_class=address_class))

    if fallback_address:
        value = str(fallback_address).strip()
        address_class = classify(value)
        if address_class is not AddressClass.INVALID and value not in seen:
            candidates.append(CandidateAddress(value=value, source=FALLBACK_SOURCE, address_class=address_class))

    return candidates


def _hardcoded_records(entries: Iterable[str]) -> List[AuthorizationRecord]:
    records = []
    for entry in entries:
        if not entry or not str(entry).strip():
            continue
        value = str(entry).strip()
        records.append(
            AuthorizationRecord(
                address=value,
                active=True,
                description=HARDCODED_SOURCE,
                type=classify_entry(value).value,
            )
        )
    return records


def _audit_comparison(candidate: CandidateAddress, record: AuthorizationRecord, source: str, matched: bool) -> None:
    try:
        logger.debug(
            "Compared client IP with allow-list entry",
            extra={
                "candidate": candidate.value,
                "candidate_source": candidate.source,
                "entry": record.address,
                "list": source,
                "matched": matched,
            },
        )
    except Exception:
        # audit output never affects the decision
        pass


def _first_match(
    candidates: Sequence[CandidateAddress],
    records: Sequence[AuthorizationRecord],
    source: str,
) -> Optional[AuthorizationRecord]:
    audit = logger.isEnabledFor(logging.DEBUG)
    for candidate in candidates:
        for record in records:
            matched = matches(candidate.value, record.address)
            if audit:
                _audit_comparison(candidate, record, source, matched)
            if matched:
                return record
    return None


def decide(
    headers: Optional[Mapping[str, str]],
    fallback_address: Optional[str],
    public_access: Optional[PublicAccessConfig],
    hardcoded_allow_list: Iterable[str],
    dynamic_allow_list: Iterable[AuthorizationRecord],
    *,
    header_order: Iterable[str] = DEFAULT_IP_HEADERS,
) -> AccessDecision:
    candidates = tuple(extract_candidates(headers, fallback_address, header_order))

    if public_access is not None and public_access.enabled:
        return AccessDecision(allowed=True, reason=ReasonCode.PUBLIC_ACCESS_ENABLED, candidates=candidates)

    if not candidates:
        return AccessDecision(allowed=False, reason=ReasonCode.IP_NOT_DETECTED)

    record = _first_match(candidates, _hardcoded_records(hardcoded_allow_list), HARDCODED_SOURCE)
    if record is not None:
        return AccessDecision(
            allowed=True,
            reason=ReasonCode.HARDCODED_IP,
            candidates=candidates,
            matched_record=record,
        )

    active_records = [entry for entry in dynamic_allow_list if entry.active]
    record = _first_match(candidates, active_records, "dynamic")
    if record is not None:
        return AccessDecision(
            allowed=True,
            reason=ReasonCode.FIREBASE_IP,
            candidates=candidates,
            matched_record=record,
        )

    return AccessDecision(allowed=False, reason=ReasonCode.IP_NOT_AUTHORIZED, candidates=candidates)


class AccessDecisionEngine:
    """Evaluate requests against the hardcoded list and an injected store."""

    def __init__(
        self,
        store: Optional[AccessStore],
        *,
        hardcoded_allow_list: Iterable[str] = (),
        header_order: Iterable[str] = DEFAULT_IP_HEADERS,
        fetch_timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.hardcoded_allow_list = tuple(hardcoded_allow_list)
        self.header_order = tuple(header.lower() for header in header_order)
        self.fetch_timeout = fetch_timeout

    async def _fetch_public_access(self) -> PublicAccessConfig:
        if self.store is None:
            return PublicAccessConfig()
        try:
            with anyio.fail_after(self.fetch_timeout):
                config = await self.store.fetch_public_access()
        except TimeoutError:
            logger.warning("Timed out loading public access config", extra={"timeout": self.fetch_timeout})
            return PublicAccessConfig()
        except Exception:
            logger.exception("Failed to load public access config")
            return PublicAccessConfig()
        return config or PublicAccessConfig()

    async def _fetch_allow_list(self) -> List[AuthorizationRecord]:
        if self.store is None:
            return []
        try:
            with anyio.fail_after(self.fetch_timeout):
                records = await self.store.fetch_active_allow_list()
        except TimeoutError:
            logger.warning("Timed out loading dynamic allow-list", extra={"timeout": self.fetch_timeout})
            return []
        except Exception:
            logger.exception("Failed to load dynamic allow-list")
            return []
        return list(records or [])

    async def load_authorization_data(self) -> tuple[PublicAccessConfig, List[AuthorizationRecord]]:
        results: dict[str, object] = {}

        async def _load_public() -> None:
            results["public"] = await self._fetch_public_access()

        async def _load_allow_list() -> None:
            results["allow_list"] = await self._fetch_allow_list()

        async with anyio.create_task_group() as group:
            group.start_soon(_load_public)
            group.start_soon(_load_allow_list)

        return results["public"], results["allow_list"]  # type: ignore[return-value]

    async def evaluate(
        self,
        headers: Optional[Mapping[str, str]],
        fallback_address: Optional[str] = None,
    ) -> AccessDecision:
        try:
            public_access, allow_list = await self.load_authorization_data()
            decision = decide(
                headers,
                fallback_address,
                public_access,
                self.hardcoded_allow_list,
                allow_list,
                header_order=self.header_order,
            )
        except Exception as exc:
            logger.exception("IP verification failed")
            raise DecisionUnavailable("verification_error") from exc

        log = logger.info if decision.allowed else logger.warning
        log(
            "IP access decision",
            extra={
                "allowed": decision.allowed,
                "reason": decision.reason.value,
                "client_ip": decision.primary_address,
                "candidates": decision.all_addresses,
                "matched_ip": decision.matched_ip,
            },
        )
        return decision


__all__ = [
    "AccessDecision",
    "AccessDecisionEngine",
    "AccessStore",
    "AuthorizationRecord",
    "CandidateAddress",
    "DEFAULT_IP_HEADERS",
    "DecisionUnavailable",
    "PublicAccessConfig",
    "ReasonCode",
    "decide",
    "extract_candidates",
]
