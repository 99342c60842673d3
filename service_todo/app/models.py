"""
Task models for the todo service.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError

MAX_TITLE_LENGTH = 255
MAX_OWNER_LENGTH = 255


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    CREATED = "created"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    ARCHIVED = "archived"


class TaskPriority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _parse_enum(enum_cls, value: Any, field: str):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}", details={"field": field, "value": value})
    normalized = value.strip().lower().replace("_", "-")
    try:
        return enum_cls(normalized)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value}",
            details={"field": field, "allowed": [member.value for member in enum_cls]}
        ) from None


def parse_status(value: Any) -> TaskStatus:
    """Parse a status name, accepting ``IN_PROGRESS`` style spellings."""
    return _parse_enum(TaskStatus, value, "status")


def parse_priority(value: Any) -> TaskPriority:
    """Parse a priority name case-insensitively."""
    return _parse_enum(TaskPriority, value, "priority")


def validate_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title is required", details={"field": "title"})
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be at most {MAX_TITLE_LENGTH} characters",
            details={"field": "title", "length": len(title)}
        )
    return title


def validate_owner(user_id: str) -> str:
    if len(user_id) > MAX_OWNER_LENGTH:
        raise ValidationError(
            f"user_id must be at most {MAX_OWNER_LENGTH} characters",
            details={"field": "user_id", "length": len(user_id)}
        )
    return user_id


class Task(BaseModel):
    """Stored task record."""

    id: str = ""
    user_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.CREATED
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateTaskRequest(BaseModel):
    """Task creation input.

    Status and priority stay raw strings so the orchestration decides
    validity and counts the rejection.
    """

    user_id: str = ""
    title: str = ""
    description: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Partial update. A field changes only if it was supplied.

    Presence is tracked by ``model_fields_set``, so an explicit empty
    description or a ``null`` due date is distinguishable from an absent
    field.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        """Validated values for the supplied fields only."""
        changes: Dict[str, Any] = {}
        fields = self.model_fields_set

        if "title" in fields:
            changes["title"] = validate_title(self.title)
        if "description" in fields:
            changes["description"] = self.description or ""
        if "status" in fields:
            changes["status"] = parse_status(self.status)
        if "priority" in fields:
            changes["priority"] = parse_priority(self.priority)
        if "due_date" in fields:
            changes["due_date"] = self.due_date

        return changes


class TaskFilter(BaseModel):
    """Exact-match filters, AND-ed together when present."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    user_id: Optional[str] = None


class SortSpec(BaseModel):
    """Requested ordering; ``field`` is checked against the store allow-list."""

    field: Optional[str] = None
    descending: bool = False


class TaskPage(BaseModel):
    """One page of tasks plus the total match count."""

    tasks: List[Task] = Field(default_factory=list)
    total: int = 0


class UpdateTaskRequest(TaskUpdate):
    """HTTP body for a partial update; ``user_id`` scopes the write."""

    user_id: str = ""
