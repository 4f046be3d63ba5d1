"""
Task endpoints.
"""

from typing import Any, Dict, List, Optional, Union

from okrtree.models.base import ObjectiveId, Task, TaskDraft, TaskId, WireModel
from okrtree.remote.transport import ApiClient, parse_model, parse_model_list


def _payload(fields: Union[WireModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(fields, WireModel):
        return fields.to_payload()
    return dict(fields)


class TasksAPI:
    """Request functions for /tasks."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def create(self, objective_id: ObjectiveId, draft: TaskDraft) -> Task:
        data = await self.client.request("POST", f"/tasks/{objective_id}", json=_payload(draft))
        return parse_model(Task, data)

    async def list_by_objective(self, objective_id: ObjectiveId) -> List[Task]:
        data = await self.client.request("GET", f"/tasks/objective/{objective_id}")
        return parse_model_list(Task, data)

    async def update(
        self, task_id: TaskId, fields: Union[WireModel, Dict[str, Any]]
    ) -> Optional[Task]:
        """Persist task fields. Returns the updated task when the store echoes it."""
        data = await self.client.request("PUT", f"/tasks/{task_id}", json=_payload(fields))
        if isinstance(data, dict):
            return parse_model(Task, data)
        return None

    async def delete(self, task_id: TaskId) -> Any:
        return await self.client.request("DELETE", f"/tasks/{task_id}")
