"""
In-memory user store for local runs and tests.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from shared.errors import ConflictError
from ..models import User
from .base import UserStore


class InMemoryUserStore(UserStore):
    """Dict-backed user store."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = asyncio.Lock()

    def _check_unique(self, user: User):
        for existing in self._users.values():
            if existing.id == user.id:
                continue
            if existing.email == user.email:
                raise ConflictError("User with this email already exists")
            if existing.username == user.username:
                raise ConflictError("User with this username already exists")

    async def create(self, user: User) -> User:
        async with self._lock:
            now = datetime.now(timezone.utc)
            stored = user.model_copy(update={
                "id": user.id or str(uuid.uuid4()),
                "created_at": user.created_at or now,
                "updated_at": user.updated_at or now,
            })
            self._check_unique(stored)
            self._users[stored.id] = stored
            return stored.model_copy()

    async def get(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy()
        return None

    async def get_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy()
        return None

    async def update(self, user: User) -> Optional[User]:
        async with self._lock:
            current = self._users.get(user.id)
            if current is None:
                return None
            self._check_unique(user)
            now = datetime.now(timezone.utc)
            if current.updated_at and now <= current.updated_at:
                now = current.updated_at + timedelta(microseconds=1)
            stored = user.model_copy(update={"created_at": current.created_at, "updated_at": now})
            self._users[stored.id] = stored
            return stored.model_copy()

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._users.pop(user_id, None) is not None

    async def list(self, page: int, page_size: int) -> Tuple[List[User], int]:
        users = sorted(self._users.values(), key=lambda user: (user.created_at, user.id), reverse=True)
        offset = (page - 1) * page_size
        return [user.model_copy() for user in users[offset:offset + page_size]], len(users)
