from __future__ import annotations

import logging
from typing import Iterable, Optional, Set

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from genoi.core.decision import AccessDecisionEngine, DecisionUnavailable

logger = logging.getLogger("access_control")


class AccessControlMiddleware(BaseHTTPMiddleware):
    """Reject requests whose client address the decision engine does not allow."""

    def __init__(
        self,
        app,
        *,
        allow_paths: Optional[Iterable[str]] = None,
        engine: Optional[AccessDecisionEngine] = None,
    ) -> None:
        super().__init__(app)
        self.allow_paths: Set[str] = {path.rstrip("/") or "/" for path in (allow_paths or [])}
        self._engine = engine

    def _resolve_engine(self, request: Request) -> AccessDecisionEngine:
        if self._engine is not None:
            return self._engine
        return request.app.state.access_engine

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if request.method == "OPTIONS" or path in self.allow_paths:
            return await call_next(request)

        fallback = request.client.host if request.client and request.client.host else None
        try:
            decision = await self._resolve_engine(request).evaluate(request.headers, fallback)
        except DecisionUnavailable:
            logger.error("Access gate could not evaluate request", extra={"path": path})
            return JSONResponse(status_code=500, content={"detail": "verification_error"})

        if not decision.allowed:
            logger.warning(
                "Access gate blocked request",
                extra={
                    "path": path,
                    "client_ip": decision.primary_address,
                    "reason": decision.reason.value,
                },
            )
            return JSONResponse(
                status_code=403,
                content={"detail": "access_denied", "reason": decision.reason.value},
            )

        request.state.client_ip = decision.primary_address
        request.state.access_decision = decision
        return await call_next(request)
