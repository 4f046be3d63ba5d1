"""
Task command group.

Tasks always belong to one objective; most commands take the objective id
first so the task list for that objective can be loaded.
"""
from typing import Optional, Tuple

import click

from okrtree.commands.common import echo_notice, require_login, run_with_core
from okrtree.constants import WARN_TASK_DELETE
from okrtree.exceptions import OkrError
from okrtree.managers import TaskForm
from okrtree.models.base import TaskStatus
from okrtree.utils import format_assignees, format_date

STATUS_CHOICES = click.Choice([status.value for status in TaskStatus], case_sensitive=False)


def _format_task(task, users_map) -> str:
    return (
        f"[{task.id}] {task.title} | {task.status.value} | {task.progress_percentage}% | "
        f"due {format_date(task.due_date)} | {format_assignees(task.assigned_to, users_map)}"
    )


async def _mounted_list(core, objective_id: int):
    require_login(core)
    sublist = core.task_list(objective_id)
    sublist.notice.connect(echo_notice)
    loaded = await sublist.mount()
    return sublist, loaded


@click.group()
def task():
    """Commands for managing tasks."""
    pass


@task.command(name="list")
@click.argument("objective_id", type=int)
def list_tasks(objective_id: int):
    """List the tasks of an objective."""
    async def action(core):
        sublist, loaded = await _mounted_list(core, objective_id)
        return sublist, loaded

    sublist, loaded = run_with_core(action)
    if not loaded:
        raise click.exceptions.Exit(1)
    if not sublist.tasks:
        click.echo("No tasks.")
        return
    for t in sublist.tasks:
        click.echo(_format_task(t, sublist.users_map))


@task.command()
@click.argument("objective_id", type=int)
@click.option("-t", "--title", required=True, help="Task title.")
@click.option("-d", "--description", required=True, help="Task description.")
@click.option("--due", "due_date", help="Due date (e.g. 2025-03-31). Defaults to today.")
@click.option("-s", "--status", type=STATUS_CHOICES, default=TaskStatus.PENDING.value,
              show_default=True, help="Initial status.")
@click.option("--progress", type=int, default=0, show_default=True, help="Progress percentage.")
@click.option("-a", "--assign", "assignees", multiple=True, help="Assignee empId (repeatable).")
def add(objective_id: int, title: str, description: str, due_date: Optional[str],
        status: str, progress: int, assignees: Tuple[str, ...]):
    """Create a task under OBJECTIVE_ID."""
    async def action(core):
        require_login(core)
        controller = core.controller
        controller.notice.connect(echo_notice)
        form = TaskForm(core.api, objective_id, controller=controller).open()
        form.notice.connect(echo_notice)
        form.set_field("title", title)
        form.set_field("description", description)
        if due_date is not None:
            form.set_field("due_date", due_date)
        form.set_field("status", status.upper())
        form.set_field("progress_percentage", progress)
        for emp_id in assignees:
            if emp_id not in form.assignees:
                form.toggle_assignee(emp_id)
        return await form.submit()

    created = run_with_core(action)
    if created is None:
        raise click.exceptions.Exit(1)
    click.echo(f"Created task {created.id}")


@task.command()
@click.argument("objective_id", type=int)
@click.argument("task_id", type=int)
@click.option("-t", "--title", help="New title.")
@click.option("-d", "--description", help="New description.")
@click.option("--due", "due_date", help="New due date.")
@click.option("-s", "--status", type=STATUS_CHOICES, help="New status.")
@click.option("-a", "--toggle-assignee", "toggles", multiple=True,
              help="Add or remove an assignee empId (repeatable).")
def update(objective_id: int, task_id: int, title: Optional[str], description: Optional[str],
           due_date: Optional[str], status: Optional[str], toggles: Tuple[str, ...]):
    """Edit a task of OBJECTIVE_ID."""
    async def action(core):
        sublist, loaded = await _mounted_list(core, objective_id)
        if not loaded:
            return None
        current = next((t for t in sublist.tasks if t.id == task_id), None)
        if current is None:
            raise click.ClickException(f"Task {task_id} not found under objective {objective_id}.")
        form = TaskForm(core.api, objective_id, sublist=sublist, task=current).open()
        form.notice.connect(echo_notice)
        for name, value in (("title", title), ("description", description),
                            ("due_date", due_date)):
            if value is not None:
                form.set_field(name, value)
        if status is not None:
            form.set_field("status", status.upper())
        for emp_id in toggles:
            form.toggle_assignee(emp_id)
        return await form.submit()

    if run_with_core(action) is None:
        raise click.exceptions.Exit(1)


@task.command()
@click.argument("objective_id", type=int)
@click.argument("task_id", type=int)
@click.argument("value", type=int)
def progress(objective_id: int, task_id: int, value: int):
    """Set the progress of a task (clamped to 0-100)."""
    async def action(core):
        sublist, loaded = await _mounted_list(core, objective_id)
        if not loaded:
            return False
        return await sublist.update_task_progress(task_id, value)

    if not run_with_core(action):
        raise click.exceptions.Exit(1)


@task.command()
@click.argument("objective_id", type=int)
@click.argument("task_id", type=int)
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
def delete(objective_id: int, task_id: int, yes: bool):
    """Delete a task."""
    if not yes:
        click.confirm(f"{WARN_TASK_DELETE}\nDelete task {task_id}?", abort=True)

    async def action(core):
        sublist, loaded = await _mounted_list(core, objective_id)
        if not loaded:
            return False
        sublist.request_delete_task(task_id)
        return await sublist.confirm_delete_task()

    if not run_with_core(action):
        raise click.exceptions.Exit(1)


@task.command()
def mine():
    """List the tasks assigned to you."""
    async def action(core):
        require_login(core)
        user = await core.session.current_user()
        if user is None:
            raise click.ClickException("Not logged in.")
        tasks = await core.api.users.get_tasks(user.emp_id)
        try:
            users_map = await core.api.users.get_users_map()
        except OkrError:
            users_map = {}
        return tasks, users_map

    tasks, users_map = run_with_core(action)
    if not tasks:
        click.echo("No tasks assigned to you.")
        return
    for t in tasks:
        click.echo(_format_task(t, users_map))
