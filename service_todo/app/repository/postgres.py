"""
PostgreSQL task store.
"""

import uuid
from typing import List, Optional, Tuple

import asyncpg

from shared.errors import InternalError
from shared.logging import get_logger
from ..models import SortSpec, Task, TaskFilter, TaskPriority, TaskStatus
from .base import TaskStore, resolve_sort

_TASK_COLUMNS = "id, user_id, title, description, status, priority, due_date, created_at, updated_at"

# Enumerations sort by lifecycle/severity rather than alphabetically
_SORT_EXPRESSIONS = {
    "title": "title",
    "status": "array_position(ARRAY[{}]::varchar[], status)".format(
        ", ".join(f"'{member.value}'" for member in TaskStatus)
    ),
    "priority": "array_position(ARRAY[{}]::varchar[], priority)".format(
        ", ".join(f"'{member.value}'" for member in TaskPriority)
    ),
    "due_date": "due_date",
    "created_at": "created_at",
    "updated_at": "updated_at",
}


class PostgresTaskStore(TaskStore):
    """asyncpg-backed task store."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("todo.store.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the pool and create the schema."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL task store started")

        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL task store", error=str(e))
            raise InternalError("Failed to connect to PostgreSQL", details={"error": str(e)})

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL task store stopped")

    async def ping(self) -> bool:
        if not self.pool:
            return False
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id VARCHAR(36) PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    title VARCHAR(255) NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status VARCHAR(20) NOT NULL DEFAULT 'created',
                    priority VARCHAR(20) NOT NULL DEFAULT 'medium',
                    due_date TIMESTAMP WITH TIME ZONE,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            # Widen owner columns created by older schemas
            await conn.execute("ALTER TABLE tasks ALTER COLUMN user_id TYPE VARCHAR(255);")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id);")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority);")

    async def create(self, task: Task) -> Task:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                INSERT INTO tasks (id, user_id, title, description, status, priority, due_date,
                                   created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, COALESCE($8, NOW()), COALESCE($9, NOW()))
                RETURNING {_TASK_COLUMNS}
            """,
                task.id or str(uuid.uuid4()), task.user_id, task.title, task.description,
                task.status.value, task.priority.value, task.due_date,
                task.created_at, task.updated_at
            )
            return _row_to_task(row)

    async def get(self, task_id: str, user_id: Optional[str] = None) -> Optional[Task]:
        async with self.pool.acquire() as conn:
            if user_id is None:
                row = await conn.fetchrow(
                    f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = $1", task_id
                )
            else:
                row = await conn.fetchrow(
                    f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = $1 AND user_id = $2",
                    task_id, user_id
                )
            return _row_to_task(row) if row else None

    async def update(self, task: Task) -> Optional[Task]:
        async with self.pool.acquire() as conn:
            # updated_at must move forward even when two writes share a clock tick
            row = await conn.fetchrow(f"""
                UPDATE tasks SET
                    title = $2,
                    description = $3,
                    status = $4,
                    priority = $5,
                    due_date = $6,
                    updated_at = GREATEST(NOW(), updated_at + INTERVAL '1 microsecond')
                WHERE id = $1
                RETURNING {_TASK_COLUMNS}
            """,
                task.id, task.title, task.description, task.status.value,
                task.priority.value, task.due_date
            )
            return _row_to_task(row) if row else None

    async def delete(self, task_id: str, user_id: Optional[str] = None) -> bool:
        async with self.pool.acquire() as conn:
            if user_id is None:
                result = await conn.execute("DELETE FROM tasks WHERE id = $1", task_id)
            else:
                result = await conn.execute(
                    "DELETE FROM tasks WHERE id = $1 AND user_id = $2", task_id, user_id
                )
            # asyncpg returns the command tag, e.g. "DELETE 1"
            return result.split()[-1] != "0"

    async def list(
        self,
        task_filter: TaskFilter,
        page: int,
        page_size: int,
        sort: Optional[SortSpec] = None
    ) -> Tuple[List[Task], int]:
        clauses = []
        params: list = []

        if task_filter.status is not None:
            params.append(task_filter.status.value)
            clauses.append(f"status = ${len(params)}")
        if task_filter.priority is not None:
            params.append(task_filter.priority.value)
            clauses.append(f"priority = ${len(params)}")
        if task_filter.user_id is not None:
            params.append(task_filter.user_id)
            clauses.append(f"user_id = ${len(params)}")

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        column, descending = resolve_sort(sort)
        order = f"{_SORT_EXPRESSIONS[column]} {'DESC' if descending else 'ASC'}, id ASC"

        async with self.pool.acquire() as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM tasks {where}", *params)
            rows = await conn.fetch(
                f"SELECT {_TASK_COLUMNS} FROM tasks {where} ORDER BY {order} "
                f"LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}",
                *params, page_size, (page - 1) * page_size
            )

        return [_row_to_task(row) for row in rows], total


def _row_to_task(row) -> Task:
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"] or "",
        status=TaskStatus(row["status"]),
        priority=TaskPriority(row["priority"]),
        due_date=row["due_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
