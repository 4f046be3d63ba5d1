"""
TaskSublistManager - the task list shown under one objective node.

Each instance owns its own tasks, users map, confirmation and request
sequencing. Failures are reported through its own `notice` signal and never
reach the tree controller or sibling lists.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from okrtree.constants import (
    MSG_PROGRESS_FAILED,
    MSG_PROGRESS_UPDATED,
    MSG_TASK_DELETE_FAILED,
    MSG_TASK_DELETED,
    MSG_TASK_SAVE_FAILED,
    MSG_TASK_UPDATED,
    MSG_TASKS_FAILED,
    NOTICE_ERROR,
    NOTICE_SUCCESS,
    WARN_TASK_DELETE,
)
from okrtree.exceptions import (
    InvalidOperationError,
    NotFoundError,
    OkrError,
    StaleResponseDiscarded,
    ValidationError,
    describe_failure,
)
from okrtree.managers.confirmation import Confirmation
from okrtree.managers.registry import SublistRegistry, TaskListListener
from okrtree.managers.sequencer import RequestSequencer
from okrtree.models.base import ObjectiveId, Task, TaskDraft, TaskId
from okrtree.remote import RemoteAPI
from okrtree.signals import signal
from okrtree.utils import clamp_progress, format_assignees

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"


class TaskSublistManager(TaskListListener):
    """
    Tasks attached to a single objective.

    Args:
        objective_id: The owning objective.
        api: Remote access layer.
        registry: Registry to join on mount so created tasks reach this list.
    """

    @signal
    def notice(self, level: str, message: str) -> None:
        """Emitted for every user-visible success or failure message."""
        pass

    @signal
    def tasks_changed(self, tasks: list) -> None:
        """Emitted after the task list changes."""
        pass

    def __init__(
        self,
        objective_id: ObjectiveId,
        api: RemoteAPI,
        registry: Optional[SublistRegistry] = None,
    ) -> None:
        self._objective_id = objective_id
        self.api = api
        self.registry = registry
        self.tasks: List[Task] = []
        self.users_map: Dict[str, str] = {}
        self.mounted = False
        self.delete_confirmation = Confirmation(WARN_TASK_DELETE)
        self._sequencer = RequestSequencer()
        self._in_flight = 0
        # Local changes made while a fetch is in flight. The fetched snapshot
        # may predate them, so they are replayed onto it.
        self._appended: Dict[TaskId, Task] = {}
        self._progress: Dict[TaskId, int] = {}
        self._removed: Set[TaskId] = set()

    @property
    def objective_id(self) -> ObjectiveId:
        return self._objective_id

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def _set_tasks(self, tasks: List[Task]) -> None:
        self.tasks = tasks
        self.tasks_changed(list(tasks))

    def _replay_local_changes(self, fetched: List[Task]) -> List[Task]:
        tasks = [t for t in fetched if t.id not in self._removed]
        tasks = [
            t.model_copy(update={"progress_percentage": self._progress[t.id]})
            if t.id in self._progress else t
            for t in tasks
        ]
        present = {t.id for t in tasks}
        tasks.extend(t for tid, t in self._appended.items() if tid not in present)
        self._appended.clear()
        self._progress.clear()
        self._removed.clear()
        return tasks

    def _find(self, task_id: TaskId) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def mount(self) -> bool:
        """Register with the registry and load tasks and assignee names."""
        if self.registry is not None:
            self.registry.register(self)
        self.mounted = True
        loaded, _ = await asyncio.gather(self.refresh(), self.load_users_map())
        return loaded

    def unmount(self) -> None:
        if self.registry is not None:
            self.registry.unregister(self)
        self.mounted = False

    async def refresh(self) -> bool:
        """
        Replace the whole list with the store's current tasks.

        Returns:
            True if the list was replaced. Stale or failed fetches keep it.
        """
        ticket = self._sequencer.issue(TASKS_KEY)
        # This fetch is answered after everything already applied locally
        self._appended.clear()
        self._progress.clear()
        self._removed.clear()
        self._in_flight += 1
        try:
            tasks = await self._sequencer.run(
                ticket, self.api.tasks.list_by_objective(self.objective_id)
            )
        except StaleResponseDiscarded:
            logger.debug("Discarded stale task list for objective %r", self.objective_id)
            return False
        except OkrError as e:
            logger.warning("Loading tasks for objective %r failed: %s", self.objective_id, e)
            self.notice(NOTICE_ERROR, MSG_TASKS_FAILED)
            return False
        finally:
            self._in_flight -= 1

        self._set_tasks(self._replay_local_changes(tasks))
        return True

    async def load_users_map(self) -> bool:
        """Fetch empId -> name. Failure only degrades assignee labels."""
        try:
            self.users_map = await self.api.users.get_users_map()
        except OkrError as e:
            logger.warning("Loading users map failed: %s", e)
            return False
        return True

    def handle_scoped_notification(self, objective_id: ObjectiveId, task: Task) -> bool:
        """Append a task created elsewhere if it belongs to this objective."""
        if objective_id != self.objective_id:
            return False
        if self._find(task.id) is not None:
            return False
        if self.loading:
            self._appended[task.id] = task
        self._set_tasks(self.tasks + [task])
        return True

    # =========================================================================
    # Edits
    # =========================================================================

    async def update_task_progress(self, task_id: TaskId, value: float) -> bool:
        """
        Persist a new progress value clamped to [0, 100].

        The full task is sent with the new value; only the progress field
        changes locally on success.
        """
        task = self._find(task_id)
        if task is None:
            self.notice(NOTICE_ERROR, MSG_PROGRESS_FAILED)
            return False

        try:
            progress = clamp_progress(value)
        except ValidationError as e:
            logger.warning("Rejected progress %r for task %r: %s", value, task_id, e)
            self.notice(NOTICE_ERROR, MSG_PROGRESS_FAILED)
            return False
        updated = task.model_copy(update={"progress_percentage": progress})
        try:
            await self.api.tasks.update(task_id, updated)
        except OkrError as e:
            logger.warning("Updating progress of task %r failed: %s", task_id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_PROGRESS_FAILED))
            return False

        if self.loading:
            self._progress[task_id] = progress
        self._set_tasks([
            t.model_copy(update={"progress_percentage": progress}) if t.id == task_id else t
            for t in self.tasks
        ])
        self.notice(NOTICE_SUCCESS, MSG_PROGRESS_UPDATED)
        return True

    async def update_task(self, task_id: TaskId, draft: TaskDraft) -> bool:
        """Persist edited fields, then reload the list."""
        try:
            await self.api.tasks.update(task_id, draft)
        except OkrError as e:
            logger.warning("Updating task %r failed: %s", task_id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_TASK_SAVE_FAILED))
            return False
        self.notice(NOTICE_SUCCESS, MSG_TASK_UPDATED)
        await self.refresh()
        return True

    def request_delete_task(self, task_id: TaskId) -> str:
        """Start a task delete. Returns the warning to show."""
        return self.delete_confirmation.request(task_id)

    def cancel_delete_task(self) -> None:
        self.delete_confirmation.cancel()

    async def confirm_delete_task(self) -> bool:
        """
        Execute the pending task delete.

        Raises:
            InvalidOperationError: If no delete is pending.
        """
        if not self.delete_confirmation.is_pending:
            raise InvalidOperationError("No task delete is pending.")

        target = self.delete_confirmation.target
        try:
            await self.delete_confirmation.confirm(self.api.tasks.delete)
        except NotFoundError:
            # Already gone from the store
            logger.info("Task %r was already deleted", target)
        except OkrError as e:
            logger.warning("Deleting task %r failed: %s", target, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_TASK_DELETE_FAILED))
            return False

        if self.loading:
            self._removed.add(target)
            self._appended.pop(target, None)
        self._set_tasks([t for t in self.tasks if t.id != target])
        self.notice(NOTICE_SUCCESS, MSG_TASK_DELETED)
        return True

    def assignee_names(self, task: Task) -> str:
        return format_assignees(task.assigned_to, self.users_map)
