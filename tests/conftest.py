"""
Test fixtures for the okrtree test suite.

Provides:
- FakeOkrServer: in-memory OKR store served through httpx.MockTransport
- API and runner fixtures wired to the fake store
- Temporary state directory fixtures (isolated from ~/.okrtree)
- Helpers for building payloads and tokens
"""

import asyncio
import base64
import itertools
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Tuple

import httpx
import pytest

from okrtree.constants import reset_config_manager
from okrtree.logger import LOGGER_NAME
from okrtree.remote import ApiClient, RemoteAPI

BASE_URL = "http://okr.test/api"


def make_token(emp_id: str, role: str = "EMPLOYEE") -> str:
    """Build an unsigned JWT carrying `sub` and `role`."""
    def segment(data: Dict[str, Any]) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).decode().rstrip("=")

    return f"{segment({'alg': 'none'})}.{segment({'sub': emp_id, 'role': role})}.sig"


# =============================================================================
# Fake remote store
# =============================================================================


class FakeOkrServer:
    """
    In-memory stand-in for the REST store.

    Objectives are kept flat with parentId links and nested on read. Deleting
    an objective removes its subtree and every task attached to it.

    Test hooks:
    - fail(method, path, status, body): next matching request returns an error
    - hold(method, path): next matching request waits for the returned event
    - tree_payloads[root_id]: raw payload served instead of the real tree
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.objectives: Dict[int, Dict[str, Any]] = {}
        self.tasks: Dict[int, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {
            "E001": {"empId": "E001", "name": "Ada Lovelace", "email": "ada@example.com",
                     "role": "ADMIN", "password": "secret"},
            "E002": {"empId": "E002", "name": "Alan Turing", "email": "alan@example.com",
                     "role": "EMPLOYEE", "password": "enigma"},
        }
        self.require_auth = False
        self.requests: List[Tuple[str, str]] = []
        self.tree_payloads: Dict[int, Any] = {}
        self._failures: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}
        self._holds: Dict[Tuple[str, str], List[asyncio.Event]] = {}

    # -- hooks ---------------------------------------------------------------

    def fail(self, method: str, path: str, status: int = 500, body: Any = None) -> None:
        self._failures.setdefault((method, path), []).append(
            (status, body if body is not None else {"message": "Internal error"})
        )

    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds.setdefault((method, path), []).append(event)
        return event

    def calls(self, method: str, path: str) -> int:
        return self.requests.count((method, path))

    # -- seeding -------------------------------------------------------------

    def add_objective(self, title: str, parent_id: Optional[int] = None, **fields: Any) -> int:
        oid = next(self._ids)
        parent = self.objectives.get(parent_id) if parent_id is not None else None
        self.objectives[oid] = {
            "id": oid,
            "title": title,
            "description": fields.get("description", f"{title} description"),
            "level": fields.get("level", "COMPANY"),
            "treeLevel": parent["treeLevel"] + 1 if parent else 0,
            "parentId": parent_id,
            "progressPercentage": fields.get("progressPercentage", 0),
        }
        return oid

    def add_task(self, objective_id: int, title: str, **fields: Any) -> int:
        tid = next(self._ids)
        self.tasks[tid] = {
            "id": tid,
            "title": title,
            "description": fields.get("description", f"{title} description"),
            "dueDate": fields.get("dueDate", "2025-12-31"),
            "status": fields.get("status", "PENDING"),
            "progressPercentage": fields.get("progressPercentage", 0),
            "assignedTo": fields.get("assignedTo", []),
            "objectiveId": objective_id,
        }
        return tid

    # -- views ---------------------------------------------------------------

    def nested(self, oid: int) -> Dict[str, Any]:
        node = dict(self.objectives[oid])
        node["children"] = [
            self.nested(cid) for cid, child in self.objectives.items() if child["parentId"] == oid
        ]
        return node

    def subtree_ids(self, oid: int) -> List[int]:
        ids = [oid]
        for cid, child in self.objectives.items():
            if child["parentId"] == oid:
                ids.extend(self.subtree_ids(cid))
        return ids

    # -- transport -----------------------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path[len("/api"):]
        self.requests.append((method, path))

        holds = self._holds.get((method, path))
        if holds:
            await holds.pop(0).wait()

        failures = self._failures.get((method, path))
        if failures:
            status, body = failures.pop(0)
            return httpx.Response(status, json=body)

        public = path in ("/users/login", "/users/register")
        if self.require_auth and not public and "authorization" not in request.headers:
            return httpx.Response(401, json={"message": "Unauthorized"})

        body = json.loads(request.content) if request.content else None
        return self._route(method, path, request.url.params, body)

    def _route(self, method: str, path: str, params: Any, body: Any) -> httpx.Response:
        parts = [p for p in path.split("/") if p]

        if parts[0] == "users":
            return self._users(method, parts[1:], body)
        if parts[0] == "objectives":
            return self._objectives(method, parts[1:], params, body)
        if parts[0] == "tasks":
            return self._tasks(method, parts[1:], body)
        return _not_found()

    def _users(self, method: str, parts: List[str], body: Any) -> httpx.Response:
        if parts == ["login"]:
            user = self.users.get(str(body.get("empId")))
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(200, json={
                "token": make_token(user["empId"], user["role"]),
                "user": _public_user(user),
            })
        if parts == ["register"]:
            emp_id = str(body["empId"])
            if emp_id in self.users:
                return httpx.Response(400, json={"message": "Employee ID already exists"})
            self.users[emp_id] = {"role": "EMPLOYEE", **body, "empId": emp_id}
            return httpx.Response(200, json={"message": "User registered successfully"})
        if parts == ["empid-name-map"]:
            return httpx.Response(200, json={k: u["name"] for k, u in self.users.items()})

        user = self.users.get(parts[0])
        if user is None:
            return _not_found()
        if len(parts) == 2 and parts[1] == "tasks":
            mine = [t for t in self.tasks.values() if parts[0] in t["assignedTo"]]
            return httpx.Response(200, json=mine)
        if method == "GET":
            return httpx.Response(200, json=_public_user(user))
        if method == "PUT":
            user.update(body)
            return httpx.Response(200, json=_public_user(user))
        return _not_found()

    def _objectives(self, method: str, parts: List[str], params: Any, body: Any) -> httpx.Response:
        if not parts and method == "POST":
            parent_id = params.get("parentId")
            parent_id = int(parent_id) if parent_id is not None else None
            if parent_id is not None and parent_id not in self.objectives:
                return _not_found()
            fields = {k: v for k, v in body.items() if k not in ("title", "treeLevel", "parentId")}
            oid = self.add_objective(body["title"], parent_id, **fields)
            return httpx.Response(201, json=self.objectives[oid])
        if parts == ["trees"]:
            roots = [self.nested(oid) for oid, o in self.objectives.items() if o["parentId"] is None]
            return httpx.Response(200, json=roots)
        if len(parts) == 2 and parts[0] == "tree":
            oid = int(parts[1])
            if oid in self.tree_payloads:
                return httpx.Response(200, json=self.tree_payloads[oid])
            if oid not in self.objectives:
                return _not_found()
            return httpx.Response(200, json=self.nested(oid))

        oid = int(parts[0])
        if oid not in self.objectives:
            return _not_found()
        if method == "GET":
            return httpx.Response(200, json=self.objectives[oid])
        if method == "PUT":
            self.objectives[oid].update(
                {k: v for k, v in body.items() if k not in ("id", "treeLevel", "parentId")}
            )
            return httpx.Response(200, json=self.objectives[oid])
        if method == "DELETE":
            doomed = set(self.subtree_ids(oid))
            for gone in doomed:
                del self.objectives[gone]
            for tid in [t for t, task in self.tasks.items() if task["objectiveId"] in doomed]:
                del self.tasks[tid]
            return httpx.Response(204)
        return _not_found()

    def _tasks(self, method: str, parts: List[str], body: Any) -> httpx.Response:
        if len(parts) == 2 and parts[0] == "objective":
            oid = int(parts[1])
            found = [t for t in self.tasks.values() if t["objectiveId"] == oid]
            return httpx.Response(200, json=found)

        key = int(parts[0])
        if method == "POST":
            if key not in self.objectives:
                return _not_found()
            fields = {k: v for k, v in body.items() if k != "title"}
            tid = self.add_task(key, body["title"], **fields)
            return httpx.Response(201, json=self.tasks[tid])
        if key not in self.tasks:
            return _not_found()
        if method == "PUT":
            self.tasks[key].update({k: v for k, v in body.items() if k not in ("id", "objectiveId")})
            return httpx.Response(200, json=self.tasks[key])
        if method == "DELETE":
            del self.tasks[key]
            return httpx.Response(204)
        return _not_found()


def _public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password"}


def _not_found() -> httpx.Response:
    return httpx.Response(404, json={"message": "Resource not found"})


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def server() -> FakeOkrServer:
    return FakeOkrServer()


@pytest.fixture
def client(server: FakeOkrServer) -> ApiClient:
    return ApiClient(base_url=BASE_URL, timeout=5.0, transport=httpx.MockTransport(server.handler))


@pytest.fixture
def api(client: ApiClient) -> RemoteAPI:
    return RemoteAPI(client)


@pytest.fixture
def run(api: RemoteAPI):
    """Run a coroutine on a fresh event loop and close the HTTP client afterwards."""
    def _run(coro):
        async def _main():
            try:
                return await coro
            finally:
                await api.close()
        return asyncio.run(_main())
    return _run


@pytest.fixture
def notices():
    """Collector usable as a notice signal callback."""
    class Collector(list):
        def __call__(self, level, message):
            self.append((level, message))

        @property
        def errors(self):
            return [m for level, m in self if level == "error"]

    return Collector()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = Path(tempfile.mkdtemp(prefix="okrtree_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def state_dir(temp_dir: Path, monkeypatch) -> Path:
    """Point OKRTREE_HOME at a temporary state directory."""
    path = temp_dir / ".okrtree"
    monkeypatch.setenv("OKRTREE_HOME", str(path))
    monkeypatch.delenv("OKRTREE_API_BASE_URL", raising=False)
    reset_config_manager()
    yield path
    reset_config_manager()


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers bound to CliRunner streams once a test finishes."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
