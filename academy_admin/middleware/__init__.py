"""Middleware exports."""

from academy_admin.middleware.auth import AuthMiddleware

__all__ = ["AuthMiddleware"]
