"""
Tree shaper: remote objective graph -> ShapedNode tree.

This is the single place that interprets the store's tree payload. Children
that cannot be shaped are dropped rather than failing the whole tree. The
traversal is iterative with a depth guard; a node reachable from itself is a
data-integrity failure.
"""

import logging
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from okrtree.constants import get_max_tree_depth
from okrtree.exceptions import TreeIntegrityError
from okrtree.models.tree import ShapedNode

logger = logging.getLogger(__name__)

_EXHAUSTED = object()

# wire key -> ShapedNode alias
_SCALAR_FIELDS = (
    ("id", "id"),
    ("title", "title"),
    ("description", "description"),
    ("level", "level"),
    ("treeLevel", "treeLevel"),
    ("progressPercentage", "progressPercentage"),
    ("parentId", "parentId"),
)


class _Frame:
    """One node on the traversal path whose children are still being shaped."""

    __slots__ = ("source", "shell", "pending", "shaped")

    def __init__(self, source: Any, shell: ShapedNode, children: List[Any]) -> None:
        self.source = source
        self.shell = shell
        self.pending: Iterator[Any] = iter(children)
        self.shaped: List[ShapedNode] = []


def _read_node(raw: Any) -> Optional[Tuple[ShapedNode, List[Any]]]:
    """
    Validate a node's own fields.

    Returns:
        (childless ShapedNode, raw children) or None if the node can't be shaped.
    """
    if raw is None:
        return None
    if isinstance(raw, BaseModel):
        data = raw.model_dump(by_alias=True, exclude={"children"})
        children = list(getattr(raw, "children", None) or [])
    elif isinstance(raw, Mapping):
        data = raw
        children = raw.get("children") or []
        if not isinstance(children, (list, tuple)):
            logger.debug("Ignoring non-list children on objective %r", raw.get("id"))
            children = []
    else:
        return None

    fields = {}
    for wire_key, alias in _SCALAR_FIELDS:
        value = data.get(wire_key)
        if value is not None:
            fields[alias] = getattr(value, "value", value)
    fields["name"] = fields.get("title")

    try:
        shell = ShapedNode.model_validate(fields)
    except PydanticValidationError as exc:
        logger.debug("Dropping objective %r that failed to shape: %s", data.get("id"), exc)
        return None
    return shell, list(children)


def shape_tree(objective: Any, max_depth: Optional[int] = None) -> Optional[ShapedNode]:
    """
    Shape an objective and its descendants into a ShapedNode tree.

    Args:
        objective: Objective model or raw JSON mapping, or None.
        max_depth: Depth guard; defaults to the configured max_tree_depth.

    Returns:
        The shaped root, or None if the input is None or cannot be shaped.

    Raises:
        TreeIntegrityError: On a cycle or when the tree is deeper than max_depth.
    """
    if max_depth is None:
        max_depth = get_max_tree_depth()

    root = _read_node(objective)
    if root is None:
        return None

    stack = [_Frame(objective, *root)]
    path_objects = {id(objective)}
    path_ids = {root[0].id}

    while True:
        frame = stack[-1]
        raw_child = next(frame.pending, _EXHAUSTED)

        if raw_child is _EXHAUSTED:
            stack.pop()
            path_objects.discard(id(frame.source))
            path_ids.discard(frame.shell.id)
            node = frame.shell.model_copy(update={"children": tuple(frame.shaped)})
            if not stack:
                return node
            stack[-1].shaped.append(node)
            continue

        child = _read_node(raw_child)
        if child is None:
            continue

        shell, grandchildren = child
        if id(raw_child) in path_objects or shell.id in path_ids:
            raise TreeIntegrityError(
                f"Objective {shell.id!r} is reachable from itself; tree payload is corrupt."
            )
        if len(stack) >= max_depth:
            raise TreeIntegrityError(
                f"Objective tree is deeper than {max_depth} levels under {frame.shell.id!r}."
            )

        stack.append(_Frame(raw_child, shell, grandchildren))
        path_objects.add(id(raw_child))
        path_ids.add(shell.id)
