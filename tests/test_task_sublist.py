"""
Tests for TaskSublistManager.

Tests cover:
- Mount, refresh and unmount
- Scoped notification handling
- Progress updates with clamping
- Task edits and two-step delete
- Assignee labels from the users map
"""

import asyncio

import pytest

from okrtree.constants import MSG_PROGRESS_FAILED, MSG_TASKS_FAILED, WARN_TASK_DELETE
from okrtree.exceptions import InvalidOperationError
from okrtree.managers.registry import SublistRegistry
from okrtree.managers.task_sublist import TaskSublistManager
from okrtree.models.base import Task, TaskDraft


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def objective(server):
    return server.add_objective("Expand EMEA")


@pytest.fixture
def registry():
    return SublistRegistry()


@pytest.fixture
def sublist(api, objective, registry, notices):
    manager = TaskSublistManager(objective, api, registry)
    manager.notice.connect(notices)
    return manager


# =============================================================================
# Lifecycle
# =============================================================================


class TestMount:
    """Test mount, refresh and unmount."""

    def test_mount_registers_and_loads(self, sublist, server, objective, registry, run):
        server.add_task(objective, "Hire regional lead", assignedTo=["E001"])

        assert run(sublist.mount()) is True

        assert sublist.mounted is True
        assert objective in registry
        assert [t.title for t in sublist.tasks] == ["Hire regional lead"]
        assert sublist.users_map["E001"] == "Ada Lovelace"

    def test_users_map_failure_still_shows_tasks(self, sublist, server, objective, run, notices):
        server.add_task(objective, "Open Paris office", assignedTo=["E002"])
        server.fail("GET", "/users/empid-name-map", 500)

        assert run(sublist.mount()) is True

        assert len(sublist.tasks) == 1
        assert sublist.users_map == {}
        assert sublist.assignee_names(sublist.tasks[0]) == "E002"
        assert notices == []

    def test_refresh_failure_keeps_previous_list(self, sublist, server, objective, run, notices):
        server.add_task(objective, "Existing")
        run(sublist.refresh())
        server.fail("GET", f"/tasks/objective/{objective}", 500)

        assert run(sublist.refresh()) is False

        assert [t.title for t in sublist.tasks] == ["Existing"]
        assert notices.errors == [MSG_TASKS_FAILED]

    def test_refresh_is_idempotent(self, sublist, server, objective, run):
        server.add_task(objective, "Only")
        run(sublist.refresh())
        run(sublist.refresh())

        assert [t.title for t in sublist.tasks] == ["Only"]

    def test_stale_refresh_is_dropped(self, sublist, server, objective, run):
        server.add_task(objective, "Before")

        async def scenario():
            gate = server.hold("GET", f"/tasks/objective/{objective}")
            first = asyncio.ensure_future(sublist.refresh())
            await asyncio.sleep(0)
            server.add_task(objective, "After")
            second = await sublist.refresh()
            gate.set()
            return await first, second

        first, second = run(scenario())

        assert (first, second) == (False, True)
        assert [t.title for t in sublist.tasks] == ["Before", "After"]

    def test_unmount_unregisters(self, sublist, objective, registry, run):
        run(sublist.mount())
        sublist.unmount()

        assert objective not in registry
        assert sublist.mounted is False


class TestScopedNotification:
    """Created tasks are appended only by the matching list."""

    def test_matching_objective_appends(self, sublist, objective, server):
        task = Task(id=1, title="Created elsewhere", objectiveId=objective)

        assert sublist.handle_scoped_notification(objective, task) is True
        assert sublist.tasks == [task]
        assert server.requests == []

    def test_other_objective_ignored(self, sublist, objective):
        task = Task(id=1, title="Not mine")

        assert sublist.handle_scoped_notification(objective + 1, task) is False
        assert sublist.tasks == []

    def test_duplicate_is_not_appended_twice(self, sublist, objective):
        task = Task(id=1, title="Once")
        sublist.handle_scoped_notification(objective, task)

        assert sublist.handle_scoped_notification(objective, task) is False
        assert len(sublist.tasks) == 1

    def test_tasks_changed_emitted(self, sublist, objective):
        seen = []
        sublist.tasks_changed.connect(seen.append)

        sublist.handle_scoped_notification(objective, Task(id=1, title="New"))

        assert [[t.id for t in tasks] for tasks in seen] == [[1]]


class TestChangesDuringFetch:
    """Local changes survive a fetch that was already in flight."""

    def test_delivered_task_survives_older_snapshot(self, sublist, server, objective, run):
        async def scenario():
            gate = server.hold("GET", f"/tasks/objective/{objective}")
            pending = asyncio.ensure_future(sublist.refresh())
            await asyncio.sleep(0)
            sublist.handle_scoped_notification(objective, Task(id=999, title="Hire regional lead"))
            gate.set()
            return await pending

        assert run(scenario()) is True
        assert [t.title for t in sublist.tasks] == ["Hire regional lead"]

    def test_delivered_task_not_duplicated_when_snapshot_has_it(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Already stored")

        async def scenario():
            gate = server.hold("GET", f"/tasks/objective/{objective}")
            pending = asyncio.ensure_future(sublist.refresh())
            await asyncio.sleep(0)
            sublist.handle_scoped_notification(objective, Task(id=tid, title="Already stored"))
            gate.set()
            await pending

        run(scenario())

        assert [t.id for t in sublist.tasks] == [tid]

    def test_progress_survives_older_snapshot(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Ship it", progressPercentage=10)

        async def scenario():
            await sublist.refresh()
            gate = server.hold("GET", f"/tasks/objective/{objective}")
            stored = dict(server.tasks[tid])
            pending = asyncio.ensure_future(sublist.refresh())
            await asyncio.sleep(0)
            await sublist.update_task_progress(tid, 80)
            # the held fetch answers with what the store held before the update
            server.tasks[tid] = stored
            gate.set()
            await pending

        run(scenario())

        assert sublist.tasks[0].progress_percentage == 80

    def test_later_fetch_drops_replayed_changes(self, sublist, server, objective, run):
        async def scenario():
            gate = server.hold("GET", f"/tasks/objective/{objective}")
            pending = asyncio.ensure_future(sublist.refresh())
            await asyncio.sleep(0)
            sublist.handle_scoped_notification(objective, Task(id=999, title="Never stored"))
            gate.set()
            await pending
            await sublist.refresh()

        run(scenario())

        assert sublist.tasks == []


# =============================================================================
# Edits
# =============================================================================


class TestProgress:
    """Progress updates are clamped and applied locally on success."""

    @pytest.mark.parametrize("value, expected", [(150, 100), (-10, 0), (42.6, 43)])
    def test_progress_is_clamped(self, sublist, server, objective, run, value, expected):
        tid = server.add_task(objective, "Hire regional lead")

        async def scenario():
            await sublist.refresh()
            return await sublist.update_task_progress(tid, value)

        assert run(scenario()) is True
        assert server.tasks[tid]["progressPercentage"] == expected
        assert sublist.tasks[0].progress_percentage == expected

    def test_full_task_is_sent(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Keep my title", status="IN_PROGRESS", assignedTo=["E001"])

        async def scenario():
            await sublist.refresh()
            await sublist.update_task_progress(tid, 70)

        run(scenario())

        stored = server.tasks[tid]
        assert stored["title"] == "Keep my title"
        assert stored["status"] == "IN_PROGRESS"
        assert stored["assignedTo"] == ["E001"]

    def test_nan_rejected_without_request(self, sublist, server, objective, run, notices):
        tid = server.add_task(objective, "Odd input", progressPercentage=10)

        async def scenario():
            await sublist.refresh()
            return await sublist.update_task_progress(tid, float("nan"))

        assert run(scenario()) is False
        assert sublist.tasks[0].progress_percentage == 10
        assert server.calls("PUT", f"/tasks/{tid}") == 0
        assert notices.errors == [MSG_PROGRESS_FAILED]

    def test_failure_leaves_state_untouched(self, sublist, server, objective, run, notices):
        tid = server.add_task(objective, "Stuck", progressPercentage=10)
        server.fail("PUT", f"/tasks/{tid}", 500)

        async def scenario():
            await sublist.refresh()
            return await sublist.update_task_progress(tid, 90)

        assert run(scenario()) is False
        assert sublist.tasks[0].progress_percentage == 10
        assert notices.errors == [MSG_PROGRESS_FAILED]

    def test_only_progress_changes_locally(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Original")

        async def scenario():
            await sublist.refresh()
            # another client renames the task meanwhile
            server.tasks[tid]["title"] = "Renamed remotely"
            await sublist.update_task_progress(tid, 50)

        run(scenario())

        assert sublist.tasks[0].title == "Original"
        assert sublist.tasks[0].progress_percentage == 50


class TestUpdateTask:
    """Test update_task method."""

    def test_update_refreshes_list(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Draft plan")
        draft = TaskDraft(title="Final plan", description="Signed off", dueDate="2025-09-01",
                          status="COMPLETED", progressPercentage=100)

        async def scenario():
            await sublist.refresh()
            return await sublist.update_task(tid, draft)

        assert run(scenario()) is True
        assert sublist.tasks[0].title == "Final plan"
        assert sublist.tasks[0].status.value == "COMPLETED"


class TestDeleteTask:
    """Two-step task delete."""

    def test_request_returns_warning(self, sublist):
        assert sublist.request_delete_task(1) == WARN_TASK_DELETE

    def test_confirm_removes_task(self, sublist, server, objective, run):
        keep = server.add_task(objective, "Keep")
        drop = server.add_task(objective, "Drop")

        async def scenario():
            await sublist.refresh()
            sublist.request_delete_task(drop)
            return await sublist.confirm_delete_task()

        assert run(scenario()) is True
        assert [t.id for t in sublist.tasks] == [keep]
        assert drop not in server.tasks

    def test_confirm_without_request_raises(self, sublist, run):
        with pytest.raises(InvalidOperationError):
            run(sublist.confirm_delete_task())

    def test_cancel_keeps_task(self, sublist, server, objective, run):
        tid = server.add_task(objective, "Keep")

        async def scenario():
            await sublist.refresh()
            sublist.request_delete_task(tid)
            sublist.cancel_delete_task()

        run(scenario())

        assert tid in server.tasks
        assert sublist.delete_confirmation.is_pending is False

    def test_failure_keeps_task(self, sublist, server, objective, run, notices):
        tid = server.add_task(objective, "Sticky")
        server.fail("DELETE", f"/tasks/{tid}", 500)

        async def scenario():
            await sublist.refresh()
            sublist.request_delete_task(tid)
            return await sublist.confirm_delete_task()

        assert run(scenario()) is False
        assert [t.id for t in sublist.tasks] == [tid]
        assert notices.errors == ["Failed to delete task. Please try again."]


class TestAssigneeNames:
    """Test assignee_names method."""

    def test_names_from_map(self, sublist):
        sublist.users_map = {"E001": "Ada Lovelace", "E002": "Alan Turing"}
        task = Task(id=1, title="Pair", assignedTo=["E001", "E002", "E001"])

        assert sublist.assignee_names(task) == "Ada Lovelace, Alan Turing"

    def test_unassigned(self, sublist):
        assert sublist.assignee_names(Task(id=1, title="Solo")) == "Not assigned"
