"""
PostgreSQL user store.
"""

import uuid
from typing import List, Optional, Tuple

import asyncpg

from shared.errors import ConflictError, InternalError
from shared.logging import get_logger
from ..models import User
from .base import UserStore

_USER_COLUMNS = "id, username, email, password_hash, full_name, created_at, updated_at"


class PostgresUserStore(UserStore):
    """asyncpg-backed user store."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("users.store.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL user store started")

        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL user store", error=str(e))
            raise InternalError("Failed to connect to PostgreSQL", details={"error": str(e)})

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL user store stopped")

    async def ping(self) -> bool:
        if not self.pool:
            return False
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id VARCHAR(36) PRIMARY KEY,
                    username VARCHAR(100) NOT NULL UNIQUE,
                    email VARCHAR(255) NOT NULL UNIQUE,
                    password_hash VARCHAR(255) NOT NULL,
                    full_name VARCHAR(200) NOT NULL DEFAULT '',
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

    async def create(self, user: User) -> User:
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(f"""
                    INSERT INTO users (id, username, email, password_hash, full_name)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {_USER_COLUMNS}
                """,
                    user.id or str(uuid.uuid4()), user.username, user.email,
                    user.password_hash, user.full_name
                )
            except asyncpg.UniqueViolationError as e:
                raise ConflictError("User with this username or email already exists") from e
            return _row_to_user(row)

    async def get(self, user_id: str) -> Optional[User]:
        return await self._fetch_one("id", user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._fetch_one("email", email)

    async def get_by_username(self, username: str) -> Optional[User]:
        return await self._fetch_one("username", username)

    async def _fetch_one(self, column: str, value: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE {column} = $1", value)
            return _row_to_user(row) if row else None

    async def update(self, user: User) -> Optional[User]:
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(f"""
                    UPDATE users SET
                        username = $2,
                        email = $3,
                        password_hash = $4,
                        full_name = $5,
                        updated_at = GREATEST(NOW(), updated_at + INTERVAL '1 microsecond')
                    WHERE id = $1
                    RETURNING {_USER_COLUMNS}
                """,
                    user.id, user.username, user.email, user.password_hash, user.full_name
                )
            except asyncpg.UniqueViolationError as e:
                raise ConflictError("User with this username or email already exists") from e
            return _row_to_user(row) if row else None

    async def delete(self, user_id: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = $1", user_id)
            return result.split()[-1] != "0"

    async def list(self, page: int, page_size: int) -> Tuple[List[User], int]:
        async with self.pool.acquire() as conn:
            total = await conn.fetchval("SELECT COUNT(*) FROM users")
            rows = await conn.fetch(
                f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at DESC, id DESC "
                "LIMIT $1 OFFSET $2",
                page_size, (page - 1) * page_size
            )
        return [_row_to_user(row) for row in rows], total


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        full_name=row["full_name"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
