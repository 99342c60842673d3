"""
Password hashing and JWT issuance for the user service.
"""

import base64
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from jose import JWTError, jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger
from .models import User

DEFAULT_EXPIRATION_HOURS = 24


class PasswordHasher:
    """PBKDF2-SHA256 password hashing.

    Hashes are encoded as ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with
    urlsafe base64 salt and digest, so the iteration count can be raised
    without invalidating existing hashes.
    """

    scheme = "pbkdf2_sha256"

    def __init__(self, iterations: int = 390000, salt_bytes: int = 16):
        self.iterations = iterations
        self.salt_bytes = salt_bytes

    def _kdf(self, salt: bytes, iterations: int) -> PBKDF2HMAC:
        return PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )

    def hash(self, password: str) -> str:
        salt = os.urandom(self.salt_bytes)
        digest = self._kdf(salt, self.iterations).derive(password.encode("utf-8"))
        return "$".join([
            self.scheme,
            str(self.iterations),
            base64.urlsafe_b64encode(salt).decode("ascii"),
            base64.urlsafe_b64encode(digest).decode("ascii"),
        ])

    def verify(self, password: str, encoded: str) -> bool:
        try:
            scheme, iterations, salt, digest = encoded.split("$")
            if not hmac.compare_digest(scheme, self.scheme):
                return False
            kdf = self._kdf(base64.urlsafe_b64decode(salt), int(iterations))
            kdf.verify(password.encode("utf-8"), base64.urlsafe_b64decode(digest))
            return True
        except (ValueError, InvalidKey):
            return False


class JWTManager:
    """Issues and verifies HS256 access tokens."""

    algorithm = "HS256"

    def __init__(self, secret_key: str, expiration_hours: int = DEFAULT_EXPIRATION_HOURS):
        self.logger = get_logger("users.jwt_manager")
        if expiration_hours <= 0:
            self.logger.warning(
                "JWT expiration hours is invalid, using default",
                configured_value=expiration_hours,
                using_value=DEFAULT_EXPIRATION_HOURS
            )
            expiration_hours = DEFAULT_EXPIRATION_HOURS
        self.secret_key = secret_key
        self.token_duration = timedelta(hours=expiration_hours)

    def generate(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + self.token_duration).timestamp()),
        }
        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        self.logger.debug("Token generated", user_id=user.id)
        return token

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the token claims; raises ``AuthenticationError`` if invalid or expired."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            self.logger.info("Token verification failed", error=str(e))
            raise AuthenticationError("Invalid token", details={"reason": str(e)})

        if not claims.get("user_id"):
            raise AuthenticationError("Invalid token claims")
        return claims
