"""
Local verification of tokens issued by the user service.
"""

from dataclasses import dataclass
from typing import Any, Dict

from jose import JWTError, jwt

from shared.errors import AuthenticationError


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved for an authenticated request."""

    user_id: str
    username: str
    email: str
    method: str
    token: str

    def as_user_info(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "method": self.method,
        }


class LocalTokenVerifier:
    """Checks HS256 signatures with the secret shared with the user service."""

    algorithm = "HS256"

    def __init__(self, secret_key: str):
        self.secret_key = secret_key

    def verify(self, token: str) -> AuthContext:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise AuthenticationError("JWT validation failed", details={"error": str(exc)}) from exc

        user_id = claims.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            raise AuthenticationError("JWT missing user_id claim")

        return AuthContext(
            user_id=user_id,
            username=claims.get("username", ""),
            email=claims.get("email", ""),
            method="local",
            token=token,
        )
