"""
Domain models for okrtree.

Wire payloads use camelCase keys; models expose snake_case attributes and
accept either spelling on input.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from okrtree.constants import DATE_FORMAT_ERROR, MAX_PROGRESS, MIN_PROGRESS
from okrtree.utils import parse_date

ObjectiveId = Union[int, str]
TaskId = Union[int, str]


class ObjectiveLevel(str, Enum):
    """Organizational classification of an objective."""

    COMPANY = "COMPANY"
    DEPARTMENT = "DEPARTMENT"
    TEAMS = "TEAMS"
    INDIVIDUALS = "INDIVIDUALS"


class TaskStatus(str, Enum):
    """Valid status values for tasks."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class WireModel(BaseModel):
    """Base for models exchanged with the remote store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Dump as a JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


def _dedupe(values: Any) -> List[str]:
    if values is None:
        return []
    return list(dict.fromkeys(str(v) for v in values))


def _coerce_due_date(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(DATE_FORMAT_ERROR)
        return parsed.date()
    return value


# =============================================================================
# Read models
# =============================================================================


class Objective(WireModel):
    """
    An objective as returned by the remote store.

    `level` keeps whatever the store sends so renderers can label values
    outside ObjectiveLevel as unknown instead of failing to load the tree.
    `children` tolerates null entries; the tree shaper drops them.
    """

    id: ObjectiveId
    title: str
    description: str = ""
    level: Optional[str] = None
    tree_level: int = Field(0, alias="treeLevel", ge=0)
    parent_id: Optional[ObjectiveId] = Field(None, alias="parentId")
    progress_percentage: int = Field(
        0, alias="progressPercentage", ge=MIN_PROGRESS, le=MAX_PROGRESS
    )
    children: List[Optional["Objective"]] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def null_children_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("description", mode="before")
    @classmethod
    def null_description_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class Task(WireModel):
    """A unit of work attached to exactly one objective."""

    id: TaskId
    title: str
    description: str = ""
    due_date: Optional[date] = Field(None, alias="dueDate")
    status: TaskStatus = TaskStatus.PENDING
    progress_percentage: int = Field(
        0, alias="progressPercentage", ge=MIN_PROGRESS, le=MAX_PROGRESS
    )
    assigned_to: List[str] = Field(default_factory=list, alias="assignedTo")
    objective_id: Optional[ObjectiveId] = Field(None, alias="objectiveId")

    @field_validator("assigned_to", mode="before")
    @classmethod
    def dedupe_assignees(cls, v: Any) -> List[str]:
        return _dedupe(v)

    @field_validator("description", mode="before")
    @classmethod
    def null_description_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class User(WireModel):
    """A user profile. Read-only from the engine's perspective."""

    emp_id: str = Field(alias="empId")
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

    @field_validator("emp_id", mode="before")
    @classmethod
    def emp_id_to_str(cls, v: Any) -> Any:
        return str(v) if v is not None else v


class LoginResult(WireModel):
    """Response of the login endpoint."""

    token: str
    user: Optional[User] = None


# =============================================================================
# Drafts (validated input collected by dialogs)
# =============================================================================


class ObjectiveDraft(WireModel):
    """Writable objective fields for create and update requests."""

    title: str
    description: str
    level: ObjectiveLevel = ObjectiveLevel.COMPANY
    progress_percentage: int = Field(
        0, alias="progressPercentage", ge=MIN_PROGRESS, le=MAX_PROGRESS
    )
    tree_level: Optional[int] = Field(None, alias="treeLevel", ge=0)
    parent_id: Optional[ObjectiveId] = Field(None, alias="parentId")

    @field_validator("title", "description")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v


class TaskDraft(WireModel):
    """Writable task fields for create and update requests."""

    title: str
    description: str
    due_date: date = Field(alias="dueDate")
    status: TaskStatus = TaskStatus.PENDING
    progress_percentage: int = Field(
        0, alias="progressPercentage", ge=MIN_PROGRESS, le=MAX_PROGRESS
    )
    assigned_to: List[str] = Field(default_factory=list, alias="assignedTo")

    @field_validator("title", "description")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _coerce_due_date(v)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def dedupe_assignees(cls, v: Any) -> List[str]:
        return _dedupe(v)
