"""
Mutation dialogs for objectives and tasks.

A form collects user input, validates it into a draft and hands the draft to
the tree controller or the remote access layer. Fields are hydrated once per
`open()`, so edits made after opening are never overwritten by the record
being edited. Closing a form resets it.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError

from okrtree.constants import (
    MSG_TASK_CREATED,
    MSG_TASK_SAVE_FAILED,
    MSG_TASK_UPDATED,
    NOTICE_ERROR,
    NOTICE_SUCCESS,
)
from okrtree.exceptions import InvalidOperationError, OkrError, ValidationError, describe_failure
from okrtree.managers.task_sublist import TaskSublistManager
from okrtree.managers.tree_controller import ObjectiveTreeController
from okrtree.models.base import (
    Objective,
    ObjectiveDraft,
    ObjectiveId,
    ObjectiveLevel,
    Task,
    TaskDraft,
    TaskStatus,
    WireModel,
)
from okrtree.models.tree import ShapedNode
from okrtree.remote import RemoteAPI
from okrtree.signals import signal

logger = logging.getLogger(__name__)


class FormMode(str, Enum):
    ROOT = "root"
    SUB = "sub"
    CREATE = "create"
    UPDATE = "update"


class _Form(ABC):
    """Shared field handling. Subclasses define the draft model, defaults and submit."""

    @property
    @abstractmethod
    def draft_model(self) -> Type[WireModel]:
        """Pydantic draft the fields validate into."""
        pass

    @signal
    def notice(self, level: str, message: str) -> None:
        """Emitted for user-visible messages raised by the form itself."""
        pass

    def __init__(self, on_success: Optional[Callable[[Any], None]] = None) -> None:
        self.on_success = on_success
        self.is_open = False
        self.submitting = False
        self.errors: Dict[str, str] = {}
        self.fields: Dict[str, Any] = self._defaults()

    @abstractmethod
    def _defaults(self) -> Dict[str, Any]:
        """Field values of a freshly opened, empty form."""
        pass

    def _hydrate(self) -> Dict[str, Any]:
        return {}

    def open(self) -> "_Form":
        """Open the form, hydrating from the edited record on the first open only."""
        if not self.is_open:
            self.fields = {**self._defaults(), **self._hydrate()}
            self.errors = {}
            self.is_open = True
        return self

    def close(self) -> None:
        self.is_open = False
        self.submitting = False
        self.errors = {}
        self.fields = self._defaults()

    def set_field(self, name: str, value: Any) -> None:
        if name not in self.fields:
            raise InvalidOperationError(f"Unknown field '{name}'")
        self.fields[name] = value
        self.errors.pop(name, None)

    def validate(self) -> WireModel:
        """
        Build the draft from the current fields.

        Raises:
            ValidationError: With per-field messages in `.errors`.
        """
        try:
            draft = self.draft_model.model_validate(self.fields)
        except PydanticValidationError as e:
            self.errors = _field_errors(self.draft_model, e)
            raise ValidationError("Please correct the highlighted fields.", self.errors)
        self.errors = {}
        return draft

    @abstractmethod
    async def submit(self) -> Any:
        """Validate and send. Returns the result, or None on failure."""
        pass

    def _succeed(self, result: Any) -> Any:
        if self.on_success is not None:
            self.on_success(result)
        self.close()
        return result


def _field_errors(model: Type[WireModel], exc: PydanticValidationError) -> Dict[str, str]:
    aliases = {
        (info.alias or name): name for name, info in model.model_fields.items()
    }
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        field = aliases.get(str(loc[0]), str(loc[0]))
        message = str(error.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from validators
        errors.setdefault(field, message.replace("Value error, ", "", 1))
    return errors


# =============================================================================
# Objectives
# =============================================================================


class ObjectiveForm(_Form):
    """
    Create a root, create a sub-objective, or update an objective.

    Notices for the store round trip come from the controller.
    """

    draft_model = ObjectiveDraft

    def __init__(
        self,
        controller: ObjectiveTreeController,
        mode: Union[FormMode, str] = FormMode.ROOT,
        parent_id: Optional[ObjectiveId] = None,
        objective: Union[Objective, ShapedNode, None] = None,
        on_success: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.controller = controller
        self.mode = FormMode(mode)
        if self.mode not in (FormMode.ROOT, FormMode.SUB, FormMode.UPDATE):
            raise InvalidOperationError(f"Objective form cannot run in '{self.mode.value}' mode")
        if self.mode == FormMode.SUB and parent_id is None:
            raise InvalidOperationError("A sub-objective needs a parent")
        if self.mode == FormMode.UPDATE and objective is None:
            raise InvalidOperationError("Nothing to update")
        self.parent_id = parent_id
        self.objective = objective
        super().__init__(on_success)

    def _defaults(self) -> Dict[str, Any]:
        return {
            "title": "",
            "description": "",
            "level": ObjectiveLevel.COMPANY.value,
            "progress_percentage": 0,
        }

    def _hydrate(self) -> Dict[str, Any]:
        if self.mode != FormMode.UPDATE or self.objective is None:
            return {}
        obj = self.objective
        return {
            "title": obj.title or "",
            "description": obj.description or "",
            "level": obj.level or ObjectiveLevel.COMPANY.value,
            "progress_percentage": obj.progress_percentage or 0,
        }

    async def submit(self) -> Any:
        """
        Validate and send to the controller.

        Returns:
            The created objective, True for an update, or None on failure.

        Raises:
            ValidationError: If the fields do not form a valid draft.
        """
        draft = self.validate()
        self.submitting = True
        try:
            if self.mode == FormMode.ROOT:
                result = await self.controller.create_root(draft)
            elif self.mode == FormMode.SUB:
                result = await self.controller.create_sub_objective(self.parent_id, draft)
            else:
                ok = await self.controller.update_objective(self.objective.id, draft)
                result = True if ok else None
        finally:
            self.submitting = False

        if result is None:
            return None
        return self._succeed(result)


# =============================================================================
# Tasks
# =============================================================================


class TaskForm(_Form):
    """
    Create a task under an objective, or update one.

    Args:
        api: Remote access layer.
        objective_id: Objective the task belongs to.
        controller: Receives created tasks for scoped delivery and tree refresh.
        sublist: The list showing the edited task; updates go through it.
        task: Task being edited. Its presence selects update mode.
    """

    draft_model = TaskDraft

    def __init__(
        self,
        api: RemoteAPI,
        objective_id: ObjectiveId,
        controller: Optional[ObjectiveTreeController] = None,
        sublist: Optional[TaskSublistManager] = None,
        task: Optional[Task] = None,
        on_success: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.api = api
        self.objective_id = objective_id
        self.controller = controller
        self.sublist = sublist
        self.task = task
        self.mode = FormMode.UPDATE if task is not None else FormMode.CREATE
        super().__init__(on_success)

    def _defaults(self) -> Dict[str, Any]:
        return {
            "title": "",
            "description": "",
            "due_date": date.today().isoformat(),
            "status": TaskStatus.PENDING.value,
            "progress_percentage": 0,
            "assigned_to": [],
        }

    def _hydrate(self) -> Dict[str, Any]:
        if self.task is None:
            return {}
        task = self.task
        return {
            "title": task.title or "",
            "description": task.description or "",
            "due_date": task.due_date.isoformat() if task.due_date else "",
            "status": task.status.value,
            "progress_percentage": task.progress_percentage,
            "assigned_to": list(task.assigned_to),
        }

    @property
    def assignees(self) -> List[str]:
        return list(self.fields["assigned_to"])

    def toggle_assignee(self, emp_id: str) -> List[str]:
        """Add `emp_id` to the assignees, or remove it if already present."""
        emp_id = str(emp_id)
        current = [a for a in self.fields["assigned_to"] if a != emp_id]
        if len(current) == len(self.fields["assigned_to"]):
            current.append(emp_id)
        self.fields["assigned_to"] = list(dict.fromkeys(current))
        return self.assignees

    async def submit(self) -> Any:
        """
        Validate and persist.

        Returns:
            The created task, the updated task (or True when the store does
            not echo it), or None on failure.

        Raises:
            ValidationError: If the fields do not form a valid draft.
        """
        draft = self.validate()
        self.submitting = True
        try:
            if self.mode == FormMode.CREATE:
                result = await self._create(draft)
            else:
                result = await self._update(draft)
        finally:
            self.submitting = False

        if result is None:
            return None
        return self._succeed(result)

    async def _create(self, draft: TaskDraft) -> Optional[Task]:
        try:
            created = await self.api.tasks.create(self.objective_id, draft)
        except OkrError as e:
            logger.warning("Creating task under %r failed: %s", self.objective_id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_TASK_SAVE_FAILED))
            return None

        self.notice(NOTICE_SUCCESS, MSG_TASK_CREATED)
        if self.controller is not None:
            await self.controller.notify_task_created(self.objective_id, created)
        return created

    async def _update(self, draft: TaskDraft) -> Any:
        if self.sublist is not None:
            ok = await self.sublist.update_task(self.task.id, draft)
            return True if ok else None

        try:
            updated = await self.api.tasks.update(self.task.id, draft)
        except OkrError as e:
            logger.warning("Updating task %r failed: %s", self.task.id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_TASK_SAVE_FAILED))
            return None
        self.notice(NOTICE_SUCCESS, MSG_TASK_UPDATED)
        return updated if updated is not None else True
