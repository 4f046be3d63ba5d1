"""
Scoped notification registry.

Maps an objective id to the task lists currently mounted for it, so the tree
controller can hand a created task (or a refresh request) to exactly the
affected list without a broadcast channel.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from okrtree.models.base import ObjectiveId, Task

logger = logging.getLogger(__name__)


class TaskListListener(ABC):
    """Interface a mounted task list exposes to the registry."""

    @property
    @abstractmethod
    def objective_id(self) -> ObjectiveId:
        """The objective whose tasks this listener owns."""
        pass

    @abstractmethod
    def handle_scoped_notification(self, objective_id: ObjectiveId, task: Task) -> bool:
        """Accept a created task if it belongs to this listener's objective."""
        pass

    @abstractmethod
    async def refresh(self) -> bool:
        """Reload the task list from the store."""
        pass


class SublistRegistry:
    """Objective id -> mounted task list listeners."""

    def __init__(self) -> None:
        self._listeners: Dict[ObjectiveId, List[TaskListListener]] = {}

    def register(self, listener: TaskListListener) -> None:
        listeners = self._listeners.setdefault(listener.objective_id, [])
        if listener not in listeners:
            listeners.append(listener)

    def unregister(self, listener: TaskListListener) -> None:
        listeners = self._listeners.get(listener.objective_id)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[listener.objective_id]

    def listeners_for(self, objective_id: ObjectiveId) -> List[TaskListListener]:
        return list(self._listeners.get(objective_id, []))

    def deliver(self, objective_id: ObjectiveId, task: Task) -> int:
        """
        Hand a created task to the listeners registered for `objective_id`.

        Returns:
            Number of listeners that accepted the task.
        """
        accepted = 0
        for listener in self.listeners_for(objective_id):
            try:
                if listener.handle_scoped_notification(objective_id, task):
                    accepted += 1
            except Exception:
                # One broken list must not stop delivery to the others
                logger.exception("Task list for objective %r failed to accept task", objective_id)
        return accepted

    async def refresh(self, objective_id: ObjectiveId) -> int:
        """
        Ask every list mounted for `objective_id` to reload.

        Returns:
            Number of lists that refreshed successfully.
        """
        refreshed = 0
        for listener in self.listeners_for(objective_id):
            if await listener.refresh():
                refreshed += 1
        return refreshed

    def discard(self, objective_ids: Iterable[ObjectiveId]) -> None:
        """Drop registrations for objectives that were deleted from the store."""
        for objective_id in objective_ids:
            if self._listeners.pop(objective_id, None) is not None:
                logger.debug("Unregistered task lists for deleted objective %r", objective_id)

    def objective_ids(self) -> List[ObjectiveId]:
        return list(self._listeners)

    def __contains__(self, objective_id: ObjectiveId) -> bool:
        return objective_id in self._listeners

    def __len__(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())
