"""
User endpoints.
"""

from typing import Any, Dict, List

from okrtree.exceptions import TransportError
from okrtree.models.base import LoginResult, Task, User
from okrtree.remote.transport import ApiClient, parse_model, parse_model_list


class UsersAPI:
    """Request functions for /users."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def register(self, fields: Dict[str, Any]) -> Any:
        return await self.client.request(
            "POST", "/users/register", json=fields, authenticated=False
        )

    async def login(self, credentials: Dict[str, Any]) -> LoginResult:
        data = await self.client.request(
            "POST", "/users/login", json=credentials, authenticated=False
        )
        return parse_model(LoginResult, data)

    async def get(self, emp_id: str) -> User:
        data = await self.client.request("GET", f"/users/{emp_id}")
        return parse_model(User, data)

    async def update(self, emp_id: str, fields: Dict[str, Any]) -> Any:
        return await self.client.request("PUT", f"/users/{emp_id}", json=fields)

    async def get_tasks(self, emp_id: str) -> List[Task]:
        data = await self.client.request("GET", f"/users/{emp_id}/tasks")
        return parse_model_list(Task, data)

    async def get_users_map(self) -> Dict[str, str]:
        """Return the empId -> display name mapping."""
        data = await self.client.request("GET", "/users/empid-name-map")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise TransportError("Expected an empId to name mapping")
        return {str(k): str(v) for k, v in data.items()}
