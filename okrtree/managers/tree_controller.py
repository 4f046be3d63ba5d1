"""
ObjectiveTreeController - owns the objective hierarchy shown to the user.

Keeps the list of root objectives, the selected root and its shaped tree in
sync with the remote store. Every user-initiated action either succeeds and
leaves a consistent state, or keeps the previous state and emits exactly one
error notice. Nothing here raises to the caller except confirmation misuse.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

from okrtree.constants import (
    MSG_NO_TREES,
    MSG_OBJECTIVE_CREATED,
    MSG_OBJECTIVE_DELETE_FAILED,
    MSG_OBJECTIVE_DELETED,
    MSG_OBJECTIVE_SAVE_FAILED,
    MSG_OBJECTIVE_UPDATED,
    MSG_ROOTS_FAILED,
    MSG_SUB_OBJECTIVE_CREATED,
    MSG_TREE_FAILED,
    NOTICE_ERROR,
    NOTICE_SUCCESS,
    WARN_OBJECTIVE_CASCADE,
    get_fallback_root_id,
    get_max_tree_depth,
)
from okrtree.exceptions import (
    InvalidOperationError,
    OkrError,
    StaleResponseDiscarded,
    TreeIntegrityError,
    describe_failure,
)
from okrtree.managers.confirmation import Confirmation
from okrtree.managers.registry import SublistRegistry
from okrtree.managers.sequencer import RequestSequencer, Ticket
from okrtree.managers.tree_shaper import shape_tree
from okrtree.models.base import Objective, ObjectiveDraft, ObjectiveId, Task
from okrtree.models.tree import ShapedNode
from okrtree.remote import RemoteAPI
from okrtree.remote.transport import parse_model
from okrtree.signals import signal

logger = logging.getLogger(__name__)

_UNSET = object()

ROOTS_KEY = "roots"
TREE_KEY = "tree"


class ObjectiveTreeController:
    """
    Root list, selection and shaped tree for one user session.

    Args:
        api: Remote access layer.
        fallback_root_id: Root tree fetched when the root list fails.
            None disables the fallback. Defaults to the configured value.
        max_tree_depth: Depth guard for the tree shaper. Defaults to config.
        registry: Shared registry of mounted task lists.
    """

    @signal
    def notice(self, level: str, message: str) -> None:
        """Emitted for every user-visible success or failure message."""
        pass

    @signal
    def tree_changed(self, tree: Optional[ShapedNode]) -> None:
        """Emitted after `current_tree` is replaced."""
        pass

    def __init__(
        self,
        api: RemoteAPI,
        fallback_root_id: Any = _UNSET,
        max_tree_depth: Optional[int] = None,
        registry: Optional[SublistRegistry] = None,
    ) -> None:
        self.api = api
        self.fallback_root_id = (
            get_fallback_root_id() if fallback_root_id is _UNSET else fallback_root_id
        )
        self.max_tree_depth = max_tree_depth or get_max_tree_depth()
        self.sublists = registry if registry is not None else SublistRegistry()

        self.root_objectives: List[Objective] = []
        self.selected_root_id: Optional[ObjectiveId] = None
        # Root most recently asked for; differs from selected_root_id while
        # its tree is still in flight
        self._requested_root_id: Optional[ObjectiveId] = None
        self.current_tree: Optional[ShapedNode] = None
        self.error: Optional[str] = None
        self.no_trees = False
        self.delete_confirmation = Confirmation(WARN_OBJECTIVE_CASCADE)

        self._sequencer = RequestSequencer()
        self._in_flight = 0
        self._mounted = False

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    # =========================================================================
    # Loading
    # =========================================================================

    async def mount(self) -> bool:
        """
        Initial load. Selects the first root when nothing is selected yet.

        Returns:
            True if the root list (or its fallback) loaded.
        """
        first_mount = not self._mounted
        self._mounted = True
        loaded = await self.load_roots()
        if first_mount and self.selected_root_id is None and self.root_objectives:
            self._adopt_root(self.root_objectives[0])
        return loaded

    async def load_roots(self) -> bool:
        """
        Fetch the root objective list.

        On failure the configured fallback root is tried once. The selection
        is never changed here except when the list comes back empty.

        Returns:
            True if root_objectives was refreshed.
        """
        ticket = self._sequencer.issue(ROOTS_KEY)
        with self._busy():
            try:
                roots = await self._sequencer.run(ticket, self.api.objectives.get_roots())
            except StaleResponseDiscarded:
                logger.debug("Discarded stale root list")
                return False
            except OkrError as e:
                logger.warning("Loading root objectives failed: %s", e)
                self.error = MSG_ROOTS_FAILED
                return await self._load_fallback_root(ticket)

        self.error = None
        self.root_objectives = roots
        self.no_trees = not roots
        if not roots:
            self._select(None)
            self._set_tree(None)
        return True

    async def _load_fallback_root(self, ticket: Ticket) -> bool:
        if self.fallback_root_id is None:
            self.root_objectives = []
            self.notice(NOTICE_ERROR, MSG_ROOTS_FAILED)
            return False

        try:
            data = await self._sequencer.run(
                ticket, self.api.objectives.get_tree(self.fallback_root_id)
            )
            root = parse_model(Objective, data)
        except StaleResponseDiscarded:
            logger.debug("Discarded stale fallback root")
            return False
        except OkrError as e:
            logger.warning("Fallback root %r failed: %s", self.fallback_root_id, e)
            self.root_objectives = []
            self.notice(NOTICE_ERROR, MSG_ROOTS_FAILED)
            return False

        logger.info("Using fallback root %r", root.id)
        self.error = None
        self.no_trees = False
        self.root_objectives = [root]
        return True

    async def select_root(self, root_id: ObjectiveId) -> bool:
        """
        Fetch, shape and display the tree under `root_id`.

        A failed fetch keeps whatever tree was shown before.

        Returns:
            True if the tree was applied.
        """
        ticket = self._sequencer.issue(TREE_KEY)
        self._requested_root_id = root_id
        with self._busy():
            try:
                payload = await self._sequencer.run(ticket, self.api.objectives.get_tree(root_id))
            except StaleResponseDiscarded:
                logger.debug("Discarded stale tree for root %r", root_id)
                return False
            except OkrError as e:
                logger.warning("Loading tree %r failed: %s", root_id, e)
                self._requested_root_id = self.selected_root_id
                self.notice(NOTICE_ERROR, MSG_TREE_FAILED)
                return False
        return self._apply_tree(root_id, payload)

    async def refresh_tree(self) -> bool:
        """
        Reload the tree of the root being shown, or of the root still being
        navigated to. No-op without a selection.
        """
        if self._requested_root_id is None:
            return False
        return await self.select_root(self._requested_root_id)

    def _apply_tree(self, root_id: ObjectiveId, payload: Any) -> bool:
        try:
            tree = shape_tree(payload, max_depth=self.max_tree_depth)
        except TreeIntegrityError as e:
            logger.error("Tree %r rejected: %s", root_id, e)
            tree = None
        if tree is None:
            self._requested_root_id = self.selected_root_id
            self.notice(NOTICE_ERROR, MSG_TREE_FAILED)
            return False

        self._select(root_id)
        self.no_trees = False
        self._set_tree(tree)
        self._prune_sublists(tree)
        return True

    def _adopt_root(self, root: Objective) -> None:
        """Select a root from its summary without another round trip."""
        # Supersede any tree fetch still in flight
        self._sequencer.issue(TREE_KEY)
        try:
            tree = shape_tree(root, max_depth=self.max_tree_depth)
        except TreeIntegrityError as e:
            logger.error("Root summary %r rejected: %s", root.id, e)
            tree = None
        if tree is None:
            self.notice(NOTICE_ERROR, MSG_TREE_FAILED)
            return
        self._select(root.id)
        self._set_tree(tree)

    def _select(self, root_id: Optional[ObjectiveId]) -> None:
        self.selected_root_id = root_id
        self._requested_root_id = root_id

    def _set_tree(self, tree: Optional[ShapedNode]) -> None:
        self.current_tree = tree
        self.tree_changed(tree)

    def _prune_sublists(self, tree: ShapedNode) -> None:
        present = tree.ids()
        self.sublists.discard(
            [oid for oid in self.sublists.objective_ids() if oid not in present]
        )

    def root_containing(self, objective_id: ObjectiveId) -> Optional[ObjectiveId]:
        """Id of the loaded root whose tree holds `objective_id`, if any."""
        for root in self.root_objectives:
            try:
                tree = shape_tree(root, max_depth=self.max_tree_depth)
            except TreeIntegrityError:
                continue
            if tree is not None and tree.find(objective_id) is not None:
                return root.id
        return None

    @property
    def empty_message(self) -> Optional[str]:
        """Text for the explicit "no trees" state, if it applies."""
        return MSG_NO_TREES if self.no_trees else None

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_root(self, draft: ObjectiveDraft) -> Optional[Objective]:
        """Create a root objective and place the selection."""
        previous = self._requested_root_id
        try:
            created = await self.api.objectives.create_root(draft)
        except OkrError as e:
            logger.warning("Creating root objective failed: %s", e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_OBJECTIVE_SAVE_FAILED))
            return None
        self.notice(NOTICE_SUCCESS, MSG_OBJECTIVE_CREATED)
        await self._place_after_create(previous)
        return created

    async def create_sub_objective(
        self, parent_id: ObjectiveId, draft: ObjectiveDraft
    ) -> Optional[Objective]:
        """Create an objective under `parent_id` and keep the active root."""
        previous = self._requested_root_id
        try:
            created = await self.api.objectives.create_sub(parent_id, draft)
        except OkrError as e:
            logger.warning("Creating sub-objective under %r failed: %s", parent_id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_OBJECTIVE_SAVE_FAILED))
            return None
        self.notice(NOTICE_SUCCESS, MSG_SUB_OBJECTIVE_CREATED)
        await self._place_after_create(previous)
        return created

    async def _place_after_create(self, previous: Optional[ObjectiveId]) -> None:
        await self.load_roots()
        if previous is None:
            if self.root_objectives:
                self._adopt_root(self.root_objectives[-1])
        else:
            await self.select_root(previous)

    async def update_objective(self, objective_id: ObjectiveId, draft: ObjectiveDraft) -> bool:
        try:
            await self.api.objectives.update(objective_id, draft)
        except OkrError as e:
            logger.warning("Updating objective %r failed: %s", objective_id, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_OBJECTIVE_SAVE_FAILED))
            return False
        self.notice(NOTICE_SUCCESS, MSG_OBJECTIVE_UPDATED)
        await self.refresh_tree()
        return True

    def request_delete_objective(self, objective_id: ObjectiveId) -> str:
        """
        Start a cascading delete.

        Returns:
            The cascade warning to show before confirming.
        """
        return self.delete_confirmation.request(objective_id)

    def cancel_delete_objective(self) -> None:
        self.delete_confirmation.cancel()

    async def confirm_delete_objective(self) -> bool:
        """
        Execute the pending delete.

        Returns:
            True if the store deleted the objective.

        Raises:
            InvalidOperationError: If no delete is pending.
        """
        if not self.delete_confirmation.is_pending:
            raise InvalidOperationError("No objective delete is pending.")

        target = self.delete_confirmation.target
        node = self.current_tree.find(target) if self.current_tree else None
        removed_ids = node.ids() if node else {target}

        try:
            await self.delete_confirmation.confirm(self.api.objectives.delete)
        except OkrError as e:
            logger.warning("Deleting objective %r failed: %s", target, e)
            self.notice(NOTICE_ERROR, describe_failure(e, MSG_OBJECTIVE_DELETE_FAILED))
            return False

        self.sublists.discard(removed_ids)
        self.notice(NOTICE_SUCCESS, MSG_OBJECTIVE_DELETED)

        if target in (self.selected_root_id, self._requested_root_id):
            self._select(None)
            self._set_tree(None)
            await self.load_roots()
            if self.root_objectives:
                self._adopt_root(self.root_objectives[0])
        else:
            await self.refresh_tree()
        return True

    # =========================================================================
    # Task list coordination
    # =========================================================================

    async def notify_task_created(self, objective_id: ObjectiveId, task: Task) -> int:
        """
        Hand a created task to the lists mounted for its objective, then
        reload the tree for updated progress.

        Returns:
            Number of lists that accepted the task.
        """
        accepted = self.sublists.deliver(objective_id, task)
        logger.debug("Task %r delivered to %d list(s)", task.id, accepted)
        await self.refresh_tree()
        return accepted

    async def refresh_tasks(self, objective_id: ObjectiveId) -> int:
        """Ask the lists mounted for `objective_id` to reload."""
        return await self.sublists.refresh(objective_id)
