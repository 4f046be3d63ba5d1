"""
Data models for okrtree.

Import models explicitly from their modules to avoid circular imports:
    from okrtree.models.base import Objective, Task, User, ObjectiveDraft, TaskDraft
    from okrtree.models.tree import ShapedNode
    from okrtree.models.files import ConfigFile, SessionFile
"""

from .base import Objective, ObjectiveDraft, Task, TaskDraft, User
from .tree import ShapedNode

Objective.model_rebuild()
