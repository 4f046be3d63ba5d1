"""
Objective endpoints.
"""

from typing import Any, Dict, List

from okrtree.models.base import Objective, ObjectiveDraft, ObjectiveId
from okrtree.remote.transport import ApiClient, parse_model, parse_model_list


def _draft_fields(draft: ObjectiveDraft) -> Dict[str, Any]:
    payload = draft.to_payload(exclude_none=True)
    # Hierarchy placement is decided by the endpoint, not by the caller
    payload.pop("treeLevel", None)
    payload.pop("parentId", None)
    return payload


class ObjectivesAPI:
    """Request functions for /objectives."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def create_root(self, draft: ObjectiveDraft) -> Objective:
        """Create a root objective. treeLevel and parentId are always forced to 0/null."""
        payload = _draft_fields(draft)
        payload["treeLevel"] = 0
        payload["parentId"] = None
        data = await self.client.request("POST", "/objectives", json=payload)
        return parse_model(Objective, data)

    async def create_sub(self, parent_id: ObjectiveId, draft: ObjectiveDraft) -> Objective:
        """Create an objective under `parent_id`."""
        data = await self.client.request(
            "POST", "/objectives", json=_draft_fields(draft), params={"parentId": parent_id}
        )
        return parse_model(Objective, data)

    async def get_roots(self) -> List[Objective]:
        """List all root objectives."""
        data = await self.client.request("GET", "/objectives/trees")
        return parse_model_list(Objective, data)

    async def get_tree(self, root_id: ObjectiveId) -> Any:
        """
        Fetch the full subtree under `root_id`.

        The raw payload is returned untouched; the tree shaper is the only
        place that interprets it.
        """
        return await self.client.request("GET", f"/objectives/tree/{root_id}")

    async def get(self, objective_id: ObjectiveId) -> Objective:
        data = await self.client.request("GET", f"/objectives/{objective_id}")
        return parse_model(Objective, data)

    async def update(self, objective_id: ObjectiveId, draft: ObjectiveDraft) -> Any:
        return await self.client.request(
            "PUT", f"/objectives/{objective_id}", json=_draft_fields(draft)
        )

    async def delete(self, objective_id: ObjectiveId) -> Any:
        """Delete an objective. The store cascades to its subtree and tasks."""
        return await self.client.request("DELETE", f"/objectives/{objective_id}")
