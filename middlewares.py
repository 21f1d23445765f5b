# /middlewares.py
"""
Response hardening and global rate limiting for the API server.
"""
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

import config
from ip_anonymizer import anonymize, get_client_ip
from services.rate_limiter import SlidingWindowRateLimiter

# API-only server: nothing may be loaded or framed
CSP_HEADER = "default-src 'none'; frame-ancestors 'none'"

HSTS_HEADER = f"max-age={config.HSTS_MAX_AGE_SECONDS}; includeSubDomains; preload"

SECURITY_HEADERS = {
    "Content-Security-Policy": CSP_HEADER,
    "Strict-Transport-Security": HSTS_HEADER,
    "Cross-Origin-Embedder-Policy": "require-corp",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware:
    """Add security headers to every HTTP response."""

    __slots__ = ('app',)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        async def wrapper(message: Message) -> None:
            if message['type'] == 'http.response.start':
                headers = MutableHeaders(raw=message['headers'])
                for name, value in SECURITY_HEADERS.items():
                    headers.setdefault(name, value)

            return await send(message)

        return await self.app(scope, receive, wrapper)


class RateLimitMiddleware:
    """
    Global per-client request limit. Keyed by the anonymized client IP that
    IPAnonymizerMiddleware stored in the request state, or computed here when
    it did not run.
    """

    __slots__ = ('app', 'limiter')

    def __init__(self, app: ASGIApp, limiter: SlidingWindowRateLimiter) -> None:
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        request = Request(scope)
        key = getattr(request.state, 'anonymized_ip', None)
        if key is None:
            key = anonymize(get_client_ip(request))

        if not self.limiter.hit(key or 'unknown'):
            response = JSONResponse(
                {"detail": "Too many requests, please try again later"},
                status_code=429,
                headers={"Retry-After": str(int(self.limiter.window_seconds))},
            )
            return await response(scope, receive, send)

        return await self.app(scope, receive, send)
