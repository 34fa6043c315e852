from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from genoi.api.deps import get_access_engine
from genoi.core.decision import (
    REASON_MESSAGES,
    AccessDecision,
    AccessDecisionEngine,
    DecisionUnavailable,
    ReasonCode,
)
from genoi.schemas import VerifyIPResponse

router = APIRouter(tags=["access"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def client_host(request: Request) -> Optional[str]:
    client = request.client
    if client and client.host:
        return client.host
    return None


def serialize_decision(decision: AccessDecision) -> VerifyIPResponse:
    return VerifyIPResponse(
        allowed=decision.allowed,
        reason=decision.reason.value,
        clientIP=decision.primary_address,
        ipType=decision.ip_type,
        allDetectedIPs=decision.all_addresses,
        matchedIP=decision.matched_ip,
        message=decision.message,
    )


def verification_error_payload() -> VerifyIPResponse:
    return VerifyIPResponse(
        allowed=False,
        reason=ReasonCode.VERIFICATION_ERROR.value,
        message=REASON_MESSAGES[ReasonCode.VERIFICATION_ERROR],
    )


@router.options("/verify-ip")
def verify_ip_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/verify-ip", response_model=VerifyIPResponse)
async def verify_ip(request: Request, engine: AccessDecisionEngine = Depends(get_access_engine)):
    try:
        decision = await engine.evaluate(request.headers, client_host(request))
    except DecisionUnavailable:
        return JSONResponse(
            status_code=500,
            content=verification_error_payload().model_dump(),
            headers=CORS_HEADERS,
        )
    return JSONResponse(status_code=200, content=serialize_decision(decision).model_dump(), headers=CORS_HEADERS)
