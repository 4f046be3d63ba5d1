"""
Tests for the remote access layer.

Tests cover:
- Endpoint paths and payloads for users, objectives and tasks
- Credential forwarding
- Error categorization
"""

import httpx
import pytest

from okrtree.exceptions import AuthenticationError, NotFoundError, TransportError
from okrtree.models.base import ObjectiveDraft, TaskDraft
from okrtree.remote import ApiClient, RemoteAPI
from okrtree.remote.transport import parse_model_list
from okrtree.models.base import Task

from conftest import BASE_URL, make_token


def recording_api(handler, **kwargs):
    """RemoteAPI whose transport hands every request to `handler`."""
    client = ApiClient(base_url=BASE_URL, timeout=5.0, transport=httpx.MockTransport(handler),
                       **kwargs)
    return RemoteAPI(client)


class TestObjectivesAPI:
    """Test objective endpoints against the fake store."""

    def test_create_root_forces_placement(self, api, server, run):
        draft = ObjectiveDraft(title="Root", description="d", treeLevel=2, parentId=7)
        created = run(api.objectives.create_root(draft))

        assert created.tree_level == 0
        assert created.parent_id is None

    def test_create_sub_uses_query_parameter(self, api, server, run):
        root = server.add_objective("Root")
        created = run(api.objectives.create_sub(root, ObjectiveDraft(title="Child", description="d")))

        assert created.parent_id == root
        assert created.tree_level == 1

    def test_get_roots_skips_nulls(self, run):
        async def handler(request):
            return httpx.Response(200, json=[None, {"id": 1, "title": "Root"}, {"title": "bad"}])

        api = recording_api(handler)

        async def scenario():
            try:
                return await api.objectives.get_roots()
            finally:
                await api.close()

        roots = run(scenario())

        assert [r.id for r in roots] == [1]

    def test_get_tree_returns_raw_payload(self, api, server, run):
        root = server.add_objective("Root")
        server.add_objective("Child", root)

        payload = run(api.objectives.get_tree(root))

        assert payload["children"][0]["title"] == "Child"

    def test_delete_cascades(self, api, server, run):
        root = server.add_objective("Root")
        child = server.add_objective("Child", root)
        server.add_task(child, "Task")

        run(api.objectives.delete(root))

        assert server.objectives == {}
        assert server.tasks == {}


class TestTasksAPI:
    """Test task endpoints."""

    def test_create_and_list(self, api, server, run):
        oid = server.add_objective("Objective")
        draft = TaskDraft(title="Write plan", description="d", dueDate="31/12/2025",
                          assignedTo=["E001", "E001"])

        async def scenario():
            created = await api.tasks.create(oid, draft)
            listed = await api.tasks.list_by_objective(oid)
            return created, listed

        created, listed = run(scenario())

        assert created.due_date.isoformat() == "2025-12-31"
        assert created.assigned_to == ["E001"]
        assert [t.id for t in listed] == [created.id]

    def test_update_accepts_dict(self, api, server, run):
        oid = server.add_objective("Objective")
        tid = server.add_task(oid, "Task")

        updated = run(api.tasks.update(tid, {"progressPercentage": 55}))

        assert updated.progress_percentage == 55

    def test_create_under_missing_objective(self, api, run):
        draft = TaskDraft(title="Lost", description="d", dueDate="2025-01-01")

        with pytest.raises(NotFoundError):
            run(api.tasks.create(999, draft))


class TestUsersAPI:
    """Test user endpoints."""

    def test_login_returns_token(self, api, run):
        result = run(api.users.login({"empId": "E001", "password": "secret"}))

        assert result.token == make_token("E001", "ADMIN")
        assert result.user.name == "Ada Lovelace"

    def test_users_map(self, api, run):
        users = run(api.users.get_users_map())

        assert users == {"E001": "Ada Lovelace", "E002": "Alan Turing"}

    def test_user_tasks(self, api, server, run):
        oid = server.add_objective("Objective")
        server.add_task(oid, "Mine", assignedTo=["E002"])
        server.add_task(oid, "Not mine", assignedTo=["E001"])

        tasks = run(api.users.get_tasks("E002"))

        assert [t.title for t in tasks] == ["Mine"]


class TestTransport:
    """Credential forwarding and error categorization."""

    def test_bearer_token_forwarded(self, run):
        seen = []

        async def handler(request):
            seen.append(request.headers.get("authorization"))
            return httpx.Response(200, json=[])

        api = recording_api(handler, token_provider=lambda: "abc")

        async def scenario():
            try:
                await api.objectives.get_roots()
                await api.users.login({"empId": "E001", "password": "x"})
            except TransportError:
                pass
            finally:
                await api.close()

        run(scenario())

        assert seen == ["Bearer abc", None]

    @pytest.mark.parametrize("status, error", [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (404, NotFoundError),
        (400, TransportError),
        (500, TransportError),
    ])
    def test_status_mapping(self, run, status, error):
        async def handler(request):
            return httpx.Response(status, json={"message": "nope"})

        api = recording_api(handler)

        async def scenario():
            try:
                await api.objectives.get_roots()
            finally:
                await api.close()

        with pytest.raises(error) as excinfo:
            run(scenario())
        assert str(excinfo.value) == "nope"

    def test_unauthorized_hook_fires(self, run):
        fired = []

        async def handler(request):
            return httpx.Response(401)

        api = recording_api(handler, on_unauthorized=lambda: fired.append(True))

        async def scenario():
            try:
                await api.objectives.get_roots()
            finally:
                await api.close()

        with pytest.raises(AuthenticationError):
            run(scenario())
        assert fired == [True]

    def test_network_error_is_transport_error(self, run):
        async def handler(request):
            raise httpx.ConnectError("refused", request=request)

        api = recording_api(handler)

        async def scenario():
            try:
                await api.objectives.get_roots()
            finally:
                await api.close()

        with pytest.raises(TransportError):
            run(scenario())

    def test_non_list_body_rejected(self):
        with pytest.raises(TransportError):
            parse_model_list(Task, {"id": 1})
