"""
Shaped tree view-model.

A ShapedNode is derived from the remote objective graph for rendering and is
never persisted. Nodes are frozen; a new tree is built on every fetch.
"""

from typing import Any, Dict, Iterator, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from okrtree.constants import MAX_PROGRESS, MIN_PROGRESS
from okrtree.models.base import ObjectiveId


class ShapedNode(BaseModel):
    """Renderable objective node with its shaped children."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    id: ObjectiveId
    title: str
    description: str = ""
    level: Optional[str] = None
    tree_level: int = Field(0, alias="treeLevel", ge=0)
    progress_percentage: int = Field(
        0, alias="progressPercentage", ge=MIN_PROGRESS, le=MAX_PROGRESS
    )
    parent_id: Optional[ObjectiveId] = Field(None, alias="parentId")
    children: Tuple["ShapedNode", ...] = ()

    def walk(self) -> Iterator["ShapedNode"]:
        """Yield this node and its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: ObjectiveId) -> Optional["ShapedNode"]:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def ids(self) -> Set[ObjectiveId]:
        return {node.id for node in self.walk()}

    def to_dict(self) -> Dict[str, Any]:
        """Dump with camelCase keys for renderers."""
        return self.model_dump(mode="json", by_alias=True)


ShapedNode.model_rebuild()
