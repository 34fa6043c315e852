from __future__ import annotations

import logging

import anyio
import pytest

from genoi.core.decision import (
    AccessDecisionEngine,
    AuthorizationRecord,
    DecisionUnavailable,
    PublicAccessConfig,
    ReasonCode,
    decide,
    extract_candidates,
)

HARDCODED = ["127.0.0.1", "::1"]


class FakeStore:
    def __init__(self, records=None, public_access=None, fail_allow_list=False, fail_public=False, delay=0.0):
        self.records = list(records or [])
        self.public_access = public_access or PublicAccessConfig()
        self.fail_allow_list = fail_allow_list
        self.fail_public = fail_public
        self.delay = delay

    async def fetch_active_allow_list(self):
        if self.delay:
            await anyio.sleep(self.delay)
        if self.fail_allow_list:
            raise ConnectionError("store unavailable")
        return [record for record in self.records if record.active]

    async def fetch_public_access(self):
        if self.delay:
            await anyio.sleep(self.delay)
        if self.fail_public:
            raise ConnectionError("store unavailable")
        return self.public_access


def _values(candidates):
    return [candidate.value for candidate in candidates]


def test_extract_candidates_takes_first_forwarded_entry_and_dedupes():
    headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1", "x-real-ip": "203.0.113.5"}
    candidates = extract_candidates(headers)
    assert _values(candidates) == ["203.0.113.5"]
    assert candidates[0].source == "x-forwarded-for"


def test_extract_candidates_scans_every_header_in_priority_order():
    headers = {
        "cf-connecting-ip": "198.51.100.20",
        "X-Real-IP": "198.51.100.10",
        "x-nf-client-connection-ip": "2001:db8::7",
    }
    assert _values(extract_candidates(headers)) == ["2001:db8::7", "198.51.100.10", "198.51.100.20"]


def test_extract_candidates_drops_unknown_and_invalid_values():
    headers = {"x-forwarded-for": "unknown", "x-real-ip": "not-an-ip", "x-client-ip": "999.1.1.1"}
    assert extract_candidates(headers) == []


def test_extract_candidates_appends_valid_fallback_last():
    candidates = extract_candidates({"x-real-ip": "198.51.100.10"}, "192.0.2.1")
    assert _values(candidates) == ["198.51.100.10", "192.0.2.1"]
    assert candidates[-1].source == "connection"

    assert _values(extract_candidates({"x-real-ip": "198.51.100.10"}, "198.51.100.10")) == ["198.51.100.10"]
    assert extract_candidates({}, "testclient") == []


def test_extract_candidates_without_headers_or_fallback_is_empty():
    assert extract_candidates(None) == []
    assert extract_candidates({}, None) == []


def test_extract_candidates_unwraps_rfc7239_forwarded():
    assert _values(extract_candidates({"forwarded": "for=192.0.2.60;proto=http;by=203.0.113.43"})) == ["192.0.2.60"]
    assert _values(extract_candidates({"forwarded": 'for="[2001:db8:cafe::17]:4711"'})) == ["2001:db8:cafe::17"]
    assert _values(extract_candidates({"forwarded": "for=192.0.2.60:8080, for=198.51.100.1"})) == ["192.0.2.60"]


def test_extract_candidates_unwraps_x_forwarded_for_parameter():
    headers = {"x-forwarded": "for=198.51.100.7;proto=https"}
    candidates = extract_candidates(headers)
    assert _values(candidates) == ["198.51.100.7"]
    assert candidates[0].source == "x-forwarded"


def test_decide_without_candidates_is_not_detected():
    decision = decide({}, None, PublicAccessConfig(), HARDCODED, [])
    assert decision.allowed is False
    assert decision.reason is ReasonCode.IP_NOT_DETECTED
    assert decision.primary_address is None
    assert decision.all_addresses == []


def test_decide_public_access_overrides_everything():
    decision = decide({}, None, PublicAccessConfig(enabled=True), [], [])
    assert decision.allowed is True
    assert decision.reason is ReasonCode.PUBLIC_ACCESS_ENABLED

    decision = decide({"x-real-ip": "198.51.100.1"}, None, PublicAccessConfig(enabled=True), [], [])
    assert decision.allowed is True
    assert decision.reason is ReasonCode.PUBLIC_ACCESS_ENABLED
    assert decision.primary_address == "198.51.100.1"
    assert decision.matched_ip is None


def test_decide_hardcoded_match():
    decision = decide({"x-real-ip": "127.0.0.1"}, None, PublicAccessConfig(), HARDCODED, [])
    assert decision.allowed is True
    assert decision.reason is ReasonCode.HARDCODED_IP
    assert decision.matched_ip == "127.0.0.1"
    assert decision.ip_type == "ipv4"


def test_decide_hardcoded_match_on_any_candidate():
    headers = {"x-forwarded-for": "203.0.113.9", "x-real-ip": "0:0:0:0:0:0:0:1"}
    decision = decide(headers, None, PublicAccessConfig(), HARDCODED, [])
    assert decision.reason is ReasonCode.HARDCODED_IP
    assert decision.primary_address == "203.0.113.9"
    assert decision.matched_ip == "::1"


def test_decide_dynamic_match():
    records = [AuthorizationRecord(address="2001:db8::1", description="office")]
    headers = {"x-forwarded-for": "2001:0db8:0000:0000:0000:0000:0000:0001"}
    decision = decide(headers, None, PublicAccessConfig(), HARDCODED, records)
    assert decision.allowed is True
    assert decision.reason is ReasonCode.FIREBASE_IP
    assert decision.matched_record == records[0]
    assert decision.ip_type == "ipv6"


def test_decide_dynamic_range_match():
    records = [AuthorizationRecord(address="203.0.113.0/24")]
    decision = decide({"x-real-ip": "203.0.113.77"}, None, PublicAccessConfig(), HARDCODED, records)
    assert decision.reason is ReasonCode.FIREBASE_IP
    assert decision.matched_ip == "203.0.113.0/24"


def test_decide_ignores_inactive_dynamic_entries():
    records = [AuthorizationRecord(address="198.51.100.7", active=False)]
    decision = decide({"x-real-ip": "198.51.100.7"}, None, PublicAccessConfig(), HARDCODED, records)
    assert decision.allowed is False
    assert decision.reason is ReasonCode.IP_NOT_AUTHORIZED
    assert decision.all_addresses == ["198.51.100.7"]


def test_decide_prefers_hardcoded_over_dynamic():
    records = [AuthorizationRecord(address="127.0.0.1")]
    decision = decide({"x-real-ip": "127.0.0.1"}, None, PublicAccessConfig(), HARDCODED, records)
    assert decision.reason is ReasonCode.HARDCODED_IP


def test_engine_uses_store_records():
    store = FakeStore(records=[AuthorizationRecord(address="198.51.100.7")])
    engine = AccessDecisionEngine(store, hardcoded_allow_list=HARDCODED)
    decision = anyio.run(engine.evaluate, {"x-real-ip": "198.51.100.7"}, None)
    assert decision.allowed is True
    assert decision.reason is ReasonCode.FIREBASE_IP


def test_engine_public_access_from_store():
    store = FakeStore(public_access=PublicAccessConfig(enabled=True, enabled_by="admin"))
    engine = AccessDecisionEngine(store)
    decision = anyio.run(engine.evaluate, {}, None)
    assert decision.reason is ReasonCode.PUBLIC_ACCESS_ENABLED


def test_engine_fails_closed_when_store_raises():
    store = FakeStore(
        records=[AuthorizationRecord(address="198.51.100.7")],
        public_access=PublicAccessConfig(enabled=True),
        fail_allow_list=True,
        fail_public=True,
    )
    engine = AccessDecisionEngine(store, hardcoded_allow_list=HARDCODED)

    denied = anyio.run(engine.evaluate, {"x-real-ip": "198.51.100.7"}, None)
    assert denied.allowed is False
    assert denied.reason is ReasonCode.IP_NOT_AUTHORIZED

    allowed = anyio.run(engine.evaluate, {"x-real-ip": "127.0.0.1"}, None)
    assert allowed.reason is ReasonCode.HARDCODED_IP


def test_engine_fails_closed_on_timeout():
    store = FakeStore(
        records=[AuthorizationRecord(address="198.51.100.7")],
        public_access=PublicAccessConfig(enabled=True),
        delay=1.0,
    )
    engine = AccessDecisionEngine(store, hardcoded_allow_list=HARDCODED, fetch_timeout=0.05)
    decision = anyio.run(engine.evaluate, {"x-real-ip": "198.51.100.7"}, None)
    assert decision.allowed is False
    assert decision.reason is ReasonCode.IP_NOT_AUTHORIZED


def test_engine_without_store_uses_hardcoded_only():
    engine = AccessDecisionEngine(None, hardcoded_allow_list=HARDCODED)
    decision = anyio.run(engine.evaluate, {}, "::1")
    assert decision.reason is ReasonCode.HARDCODED_IP


def test_engine_reports_unavailable_decision(monkeypatch):
    engine = AccessDecisionEngine(FakeStore(), hardcoded_allow_list=HARDCODED)

    def _explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("genoi.core.decision.decide", _explode)
    with pytest.raises(DecisionUnavailable):
        anyio.run(engine.evaluate, {"x-real-ip": "127.0.0.1"}, None)


class _FailingFilter(logging.Filter):
    def filter(self, record):
        raise RuntimeError("log sink down")


def test_decide_is_unaffected_by_failing_audit_logging():
    audit_logger = logging.getLogger("access_control")
    failing = _FailingFilter()
    previous_level = audit_logger.level
    audit_logger.setLevel(logging.DEBUG)
    audit_logger.addFilter(failing)
    try:
        decision = decide({"x-real-ip": "127.0.0.1"}, None, PublicAccessConfig(), HARDCODED, [])
        denied = decide({"x-real-ip": "198.51.100.1"}, None, PublicAccessConfig(), HARDCODED, [])
    finally:
        audit_logger.removeFilter(failing)
        audit_logger.setLevel(previous_level)

    assert decision.allowed is True
    assert decision.reason is ReasonCode.HARDCODED_IP
    assert denied.reason is ReasonCode.IP_NOT_AUTHORIZED
