import html
import re
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from plantry.shared.utils import settings, ErrorResponse

# --- Rate Limiting ---
# Per client address; switched off with RATE_LIMIT_ENABLED=false
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

LOGIN_LIMIT = "5/minute"
WRITE_LIMIT = "10/minute"
BROWSE_LIMIT = "60/minute"

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    body = ErrorResponse(error=f"Rate limit exceeded: {exc.detail}")
    return JSONResponse(status_code=429, content=body.model_dump(exclude_none=True))

def setup_rate_limiting(app: FastAPI):
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# --- Security Headers Middleware ---
# img-src allows https: for the product photo CDN
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'; img-src 'self' data: https:; object-src 'none'; frame-ancestors 'none';",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response

# --- Input Sanitization ---
def sanitize_input(text):
    """Strip and HTML-escape free text before it is stored.

    Addresses, notes and names are echoed back to the storefront, so markup
    is neutralised on the way in. Non-string values (None included) pass
    through untouched.
    """
    if not isinstance(text, str):
        return text
    return html.escape(text.strip())

PASSWORD_RULES = (
    (re.compile(r".{8,}", re.DOTALL), "at least 8 characters"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
)

def password_problems(password: str) -> List[str]:
    """Rules from PASSWORD_RULES the password does not meet, in order."""
    return [message for pattern, message in PASSWORD_RULES if not pattern.search(password)]
