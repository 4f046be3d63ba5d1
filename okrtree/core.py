"""
OkrCore - wires the okrtree components for one process.

Orchestrates:
- StorageManager: session.json and config.json in the state directory
- SessionManager: bearer token, fed to the transport
- RemoteAPI: users, objectives and tasks endpoints over one ApiClient
- ObjectiveTreeController: root list, selection and shaped tree
- SublistRegistry: task lists mounted under tree nodes
"""

import os
from pathlib import Path
from typing import Optional

import httpx

from okrtree.constants import (
    API_BASE_URL_ENV_VAR,
    DEFAULT_API_BASE_URL,
    DEFAULT_FALLBACK_ROOT_ID,
    DEFAULT_MAX_TREE_DEPTH,
    DEFAULT_REQUEST_TIMEOUT,
    ConfigManager,
    get_state_dir,
)
from okrtree.exceptions import ConfigurationError
from okrtree.managers import (
    ObjectiveTreeController,
    SessionManager,
    StorageManager,
    SublistRegistry,
    TaskSublistManager,
)
from okrtree.models.base import ObjectiveId
from okrtree.remote import ApiClient, RemoteAPI


class OkrCore:
    """
    Component graph for the CLI and for embedding.

    Args:
        state_dir: Local state directory. Defaults to ~/.okrtree or $OKRTREE_HOME.
        transport: Optional httpx transport, used by tests to fake the store.
    """

    def __init__(
        self,
        state_dir: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.state_dir = state_dir if state_dir else get_state_dir()
        self.config = ConfigManager(state_dir=self.state_dir)
        self.storage = StorageManager(self.state_dir)

        try:
            timeout = self.config.get_float("request_timeout", DEFAULT_REQUEST_TIMEOUT)
            max_tree_depth = self.config.get_int("max_tree_depth", DEFAULT_MAX_TREE_DEPTH)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value in {self.config.config_path}: {e}")

        base_url = os.environ.get(API_BASE_URL_ENV_VAR) or self.config.get_str(
            "api_base_url", DEFAULT_API_BASE_URL
        )
        self.client = ApiClient(
            base_url=base_url,
            token_provider=lambda: self.session.token,
            timeout=timeout,
            transport=transport,
            on_unauthorized=lambda: self.session.invalidate(),
        )
        self.api = RemoteAPI(self.client)
        self.session = SessionManager(self.storage, self.api.users)

        self.sublists = SublistRegistry()
        self.controller = ObjectiveTreeController(
            self.api,
            fallback_root_id=self.config.get("fallback_root_id", DEFAULT_FALLBACK_ROOT_ID),
            max_tree_depth=max_tree_depth,
            registry=self.sublists,
        )

    def task_list(self, objective_id: ObjectiveId) -> TaskSublistManager:
        """Create a task list for `objective_id` sharing this core's registry."""
        return TaskSublistManager(objective_id, self.api, registry=self.sublists)

    async def close(self) -> None:
        await self.api.close()

    async def __aenter__(self) -> "OkrCore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
