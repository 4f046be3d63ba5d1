"""
Objective command group ("okr").

Browse root objectives and their trees, and create, edit or delete
objectives. Deleting an objective cascades to its sub-objectives and tasks.
"""
from typing import Optional

import click

from okrtree.commands.common import echo_notice, render_tree, require_login, root_label, run_with_core
from okrtree.constants import WARN_OBJECTIVE_CASCADE
from okrtree.managers import FormMode, ObjectiveForm
from okrtree.models.base import ObjectiveLevel

LEVEL_CHOICES = click.Choice([level.value for level in ObjectiveLevel], case_sensitive=False)


def _controller(core):
    require_login(core)
    controller = core.controller
    controller.notice.connect(echo_notice)
    return controller


@click.group()
def okr():
    """Browse and edit objective trees."""
    pass


@okr.command()
def roots():
    """List root objectives."""
    async def action(core):
        controller = _controller(core)
        ok = await controller.load_roots()
        return ok, controller

    ok, controller = run_with_core(action)
    if not ok:
        raise click.exceptions.Exit(1)
    if controller.no_trees:
        click.echo(controller.empty_message)
        return
    for root in controller.root_objectives:
        click.echo(root_label(root))


@okr.command()
@click.argument("root_id", type=int, required=False)
def tree(root_id: Optional[int]):
    """Show the tree under ROOT_ID (defaults to the first root)."""
    async def action(core):
        controller = _controller(core)
        await controller.mount()
        target = root_id if root_id is not None else controller.selected_root_id
        if target is None:
            return False, controller
        return await controller.select_root(target), controller

    ok, controller = run_with_core(action)
    if controller.no_trees:
        click.echo(controller.empty_message)
        return
    if not ok:
        raise click.exceptions.Exit(1)
    click.echo(root_label(controller.current_tree))
    render_tree(controller.current_tree)


@okr.command()
@click.option("-t", "--title", required=True, help="Objective title.")
@click.option("-d", "--description", required=True, help="Objective description.")
@click.option("-l", "--level", type=LEVEL_CHOICES, default=ObjectiveLevel.COMPANY.value,
              show_default=True, help="Organizational level.")
@click.option("--progress", type=int, default=0, show_default=True, help="Progress percentage.")
@click.option("-p", "--parent", "parent_id", type=int,
              help="Parent objective id. Omit to create a root objective.")
def add(title: str, description: str, level: str, progress: int, parent_id: Optional[int]):
    """Create a root objective, or a sub-objective with --parent."""
    async def action(core):
        controller = _controller(core)
        await controller.mount()
        if parent_id is not None:
            root_id = controller.root_containing(parent_id)
            if root_id is not None and root_id != controller.selected_root_id:
                await controller.select_root(root_id)
        mode = FormMode.SUB if parent_id is not None else FormMode.ROOT
        form = ObjectiveForm(controller, mode, parent_id=parent_id).open()
        form.set_field("title", title)
        form.set_field("description", description)
        form.set_field("level", level.upper())
        form.set_field("progress_percentage", progress)
        created = await form.submit()
        return created, controller

    created, controller = run_with_core(action)
    if created is None:
        raise click.exceptions.Exit(1)
    click.echo(f"Created objective {created.id}")
    if controller.current_tree is not None:
        render_tree(controller.current_tree)


@okr.command()
@click.argument("objective_id", type=int)
@click.option("-t", "--title", help="New title.")
@click.option("-d", "--description", help="New description.")
@click.option("-l", "--level", type=LEVEL_CHOICES, help="New level.")
@click.option("--progress", type=int, help="New progress percentage.")
def update(objective_id: int, title: Optional[str], description: Optional[str],
           level: Optional[str], progress: Optional[int]):
    """Edit an objective."""
    async def action(core):
        controller = _controller(core)
        objective = await core.api.objectives.get(objective_id)
        form = ObjectiveForm(controller, FormMode.UPDATE, objective=objective).open()
        if title is not None:
            form.set_field("title", title)
        if description is not None:
            form.set_field("description", description)
        if level is not None:
            form.set_field("level", level.upper())
        if progress is not None:
            form.set_field("progress_percentage", progress)
        return await form.submit()

    if run_with_core(action) is None:
        raise click.exceptions.Exit(1)


@okr.command()
@click.argument("objective_id", type=int)
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
def delete(objective_id: int, yes: bool):
    """Delete an objective with its sub-objectives and tasks."""
    if not yes:
        click.confirm(f"{WARN_OBJECTIVE_CASCADE}\nDelete objective {objective_id}?", abort=True)

    async def action(core):
        controller = _controller(core)
        await controller.mount()
        controller.request_delete_objective(objective_id)
        return await controller.confirm_delete_objective()

    if not run_with_core(action):
        raise click.exceptions.Exit(1)
