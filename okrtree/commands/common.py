"""
Helpers shared by the CLI command groups.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

import click

from okrtree.constants import NOTICE_ERROR, NOTICE_SUCCESS, NOTICE_WARNING
from okrtree.core import OkrCore
from okrtree.exceptions import OkrError, ValidationError
from okrtree.models.tree import ShapedNode
from okrtree.utils import level_label, truncate

_NOTICE_COLORS = {
    NOTICE_SUCCESS: "green",
    NOTICE_ERROR: "red",
    NOTICE_WARNING: "yellow",
}


def echo_notice(level: str, message: str) -> None:
    """Print a notice emitted by a controller, list or form."""
    click.secho(message, fg=_NOTICE_COLORS.get(level), err=level == NOTICE_ERROR)


def run_with_core(action: Callable[[OkrCore], Awaitable[Any]]) -> Any:
    """
    Build a core, run `action` on a fresh event loop and close the core.

    Raises:
        click.ClickException: For any okrtree error escaping `action`.
    """
    try:
        core = OkrCore()
    except OkrError as e:
        raise click.ClickException(str(e))

    async def _main() -> Any:
        try:
            return await action(core)
        finally:
            await core.close()

    try:
        return asyncio.run(_main())
    except ValidationError as e:
        details = "; ".join(f"{field}: {msg}" for field, msg in e.errors.items())
        raise click.ClickException(f"{e} {details}".strip())
    except OkrError as e:
        raise click.ClickException(str(e))


def require_login(core: OkrCore) -> None:
    if not core.session.is_authenticated:
        raise click.ClickException("Not logged in. Run 'okrtree auth login' first.")


def root_label(node: Any) -> str:
    return f"OKR-{node.id}: {truncate(node.title)}"


def render_tree(tree: Optional[ShapedNode]) -> None:
    """Print a shaped tree as an indented outline."""
    if tree is None:
        return
    stack = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        indent = "  " * depth
        click.echo(
            f"{indent}- [{node.id}] {node.title} "
            f"({level_label(node.level)}, {node.progress_percentage}%)"
        )
        for child in reversed(node.children):
            stack.append((child, depth + 1))
