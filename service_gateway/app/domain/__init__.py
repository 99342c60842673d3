"""Request-level policy for the gateway."""

from .auth_middleware import AuthMiddleware

__all__ = ["AuthMiddleware"]
