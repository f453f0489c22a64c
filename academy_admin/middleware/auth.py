"""Authentication middleware for JWT token validation."""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from academy_admin.utils.security import decode_access_token
from academy_admin.utils.request_context import (
    clear_all_context,
    set_current_user_email,
    set_current_user_name,
    set_current_user_role,
)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that extracts and validates JWT tokens from requests.

    Accepts an Authorization bearer token or an ``access_token`` cookie.
    Requests without a valid token pass through with an empty context;
    endpoints reject them through ``require_role``.
    """

    # Paths that don't require authentication
    EXEMPT_PATHS = {
        "/health",
        "/api/docs",
        "/api/redoc",
        "/api/openapi.json",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and extract authentication context."""
        # Clear context from previous request
        clear_all_context()

        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        token = self._extract_token(request)
        if token:
            payload = decode_access_token(token)
            if payload and payload.get("sub"):
                set_current_user_email(payload["sub"])
                set_current_user_role(payload.get("role"))
                set_current_user_name(payload.get("name") or None)

        response = await call_next(request)

        # Clear context after request
        clear_all_context()

        return response

    def _extract_token(self, request: Request) -> str | None:
        """Extract JWT token from request.

        Priority:
        1. Authorization header (Bearer token)
        2. access_token cookie
        """
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            return auth_header.removeprefix("Bearer ").strip()

        return request.cookies.get("access_token")
