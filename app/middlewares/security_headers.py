from __future__ import annotations

from typing import Mapping

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

DEFAULT_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "X-Frame-Options": "DENY",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach baseline security headers; routes may override any of them."""

    def __init__(self, app, headers: Mapping[str, str] | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        if response.headers.get("content-type", "").startswith("text/event-stream"):
            # Reverse proxies must pass change-feed events through unbuffered.
            response.headers.setdefault("X-Accel-Buffering", "no")
        return response
