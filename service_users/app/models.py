"""
User models for the user service.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8
FULL_NAME_MAX_LENGTH = 200

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class User(BaseModel):
    """Stored user record, including the password hash."""

    id: str = ""
    username: str
    email: str
    password_hash: str
    full_name: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserResponse(BaseModel):
    """Public view of a user."""

    id: str
    username: str
    email: str
    full_name: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.model_dump(exclude={"password_hash"}))


class CreateUserRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    full_name: str = ""


class UpdateUserRequest(BaseModel):
    """Partial update; only fields present in ``model_fields_set`` change."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ValidateTokenRequest(BaseModel):
    token: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class ValidateTokenResponse(BaseModel):
    valid: bool
    user: Optional[UserResponse] = None


class UserPage(BaseModel):
    users: List[UserResponse] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10


def validate_username(username: Optional[str]) -> str:
    username = (username or "").strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters",
            details={"field": "username"}
        )
    return username


def validate_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address", details={"field": "email"})
    return email


def validate_password(password: Optional[str]) -> str:
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
            details={"field": "password"}
        )
    return password


def validate_full_name(full_name: Optional[str]) -> str:
    full_name = full_name or ""
    if len(full_name) > FULL_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Full name must be at most {FULL_NAME_MAX_LENGTH} characters",
            details={"field": "full_name"}
        )
    return full_name


def validated_changes(request: UpdateUserRequest) -> Dict[str, Any]:
    """Validated values for the supplied fields only; ``password`` stays plain."""
    changes: Dict[str, Any] = {}
    fields = request.model_fields_set

    if "username" in fields:
        changes["username"] = validate_username(request.username)
    if "email" in fields:
        changes["email"] = validate_email(request.email)
    if "password" in fields:
        changes["password"] = validate_password(request.password)
    if "full_name" in fields:
        changes["full_name"] = validate_full_name(request.full_name)

    return changes
