"""
TODOSYNC - Todo Schema Definition
=================================
Data model shared by the filter selector, the view model and the mutation
coordinator. The remote service owns every Todo; the client only ever holds
frozen copies returned by the last fetch.
"""

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


class TodoStatus(str, Enum):
    """Todo lifecycle states"""
    PENDING = "pending"       # Unchecked
    COMPLETED = "completed"   # Checked, rendered with a line-through


class TodoFilter(str, Enum):
    """Status tabs the list can be filtered by"""
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


FILTER_TABS = (TodoFilter.ALL, TodoFilter.PENDING, TodoFilter.COMPLETED)


class Todo(BaseModel):
    """Single todo as returned by the remote service"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    body: str
    status: TodoStatus = TodoStatus.PENDING

    @field_validator("body")
    @classmethod
    def _body_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("body must not be empty")
        return value

    @property
    def is_completed(self) -> bool:
        return self.status == TodoStatus.COMPLETED


def parse_todo(data: Any) -> Todo:
    """Build a Todo from untrusted input, raising our ValidationError"""
    try:
        return Todo.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid todo {data!r}: {e}") from e


def validate_todo_id(todo_id: Any) -> int:
    """Reject ids that could never name a todo"""
    if isinstance(todo_id, bool) or not isinstance(todo_id, int) or todo_id < 1:
        raise ValidationError(f"Invalid todo id: {todo_id!r}")
    return todo_id


def validate_body(body: Any) -> str:
    if not isinstance(body, str) or not body.strip():
        raise ValidationError("Todo body must be a non-empty string")
    return body.strip()


def coerce_filter(value: Union[TodoFilter, str]) -> TodoFilter:
    try:
        return TodoFilter(value)
    except ValueError as e:
        raise ValidationError(
            f"Unknown filter {value!r}, expected one of {[f.value for f in FILTER_TABS]}"
        ) from e


def statuses_for_filter(active: TodoFilter) -> List[TodoStatus]:
    """Statuses the remote query must be scoped to for a given tab"""
    if active == TodoFilter.ALL:
        return [TodoStatus.COMPLETED, TodoStatus.PENDING]
    return [TodoStatus(active.value)]


# ============================================================
# MUTATION RESULTS
# ============================================================

class MutationResult(BaseModel):
    """Outcome of one remote mutation: success or failure(reason)"""
    model_config = ConfigDict(frozen=True)

    action: str                      # "create", "complete" or "delete"
    todo_id: Optional[int] = None    # None for a create that never got an id
    ok: bool
    reason: Optional[str] = None
    skipped: bool = False            # no request was issued

    @classmethod
    def success(cls, action: str, todo_id: Optional[int] = None) -> "MutationResult":
        return cls(action=action, todo_id=todo_id, ok=True)

    @classmethod
    def noop(cls, action: str, todo_id: Optional[int], reason: str) -> "MutationResult":
        return cls(action=action, todo_id=todo_id, ok=True, reason=reason, skipped=True)

    @classmethod
    def failure(cls, action: str, todo_id: Optional[int], reason: str) -> "MutationResult":
        return cls(action=action, todo_id=todo_id, ok=False, reason=reason)


class BulkResult(BaseModel):
    """Outcome of a fanned-out bulk intent"""
    action: str
    results: List[MutationResult] = Field(default_factory=list)

    @property
    def skipped(self) -> bool:
        """True when the intent was a no-op and issued no request"""
        return not self.results

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def failed_ids(self) -> List[int]:
        return [r.todo_id for r in self.results if not r.ok and r.todo_id is not None]

    @property
    def ok(self) -> bool:
        return self.failed == 0
