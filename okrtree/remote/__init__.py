"""
Remote access layer for okrtree.

Stateless request functions grouped by resource:
- UsersAPI: registration, login, profiles, user tasks, empId -> name map
- ObjectivesAPI: root/sub creation, root list, subtree, update, cascading delete
- TasksAPI: create under an objective, list, update, delete

RemoteAPI bundles the three groups over a single ApiClient.
"""

from typing import Optional

from okrtree.remote.objectives import ObjectivesAPI
from okrtree.remote.tasks import TasksAPI
from okrtree.remote.transport import ApiClient
from okrtree.remote.users import UsersAPI


class RemoteAPI:
    """All resource groups sharing one transport."""

    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client or ApiClient()
        self.users = UsersAPI(self.client)
        self.objectives = ObjectivesAPI(self.client)
        self.tasks = TasksAPI(self.client)

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "RemoteAPI":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = [
    "ApiClient",
    "ObjectivesAPI",
    "RemoteAPI",
    "TasksAPI",
    "UsersAPI",
]
