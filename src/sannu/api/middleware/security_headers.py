"""
Security headers added to every response.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from sannu.config import is_production

AUTH_PATHS = ("/login", "/register", "/forgot-password", "/reset-password")

DEFAULT_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

HSTS = "max-age=31536000; includeSubDomains"
AUTH_CSP = "frame-ancestors 'none'; base-uri 'self'; form-action 'self'"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        for name, value in DEFAULT_HEADERS.items():
            response.headers[name] = value

        if is_production() and request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS

        if request.url.path.startswith(AUTH_PATHS):
            response.headers["Content-Security-Policy"] = AUTH_CSP

        return response
