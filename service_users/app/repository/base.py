"""
User store interface.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import User


class UserStore(ABC):
    """Persistence for user accounts. Usernames and emails are unique."""

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def create(self, user: User) -> User:
        """Persist a user; raises ``ConflictError`` on a duplicate username or email."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    async def update(self, user: User) -> Optional[User]:
        ...

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        ...

    @abstractmethod
    async def list(self, page: int, page_size: int) -> Tuple[List[User], int]:
        """Newest first."""
