"""
Authentication helpers for the gateway.
"""

from .tokens import AuthContext, LocalTokenVerifier

__all__ = [
    "AuthContext",
    "LocalTokenVerifier",
]
