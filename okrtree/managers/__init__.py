"""
Managers for okrtree.

This package contains focused manager classes that handle specific aspects of okrtree functionality:
- ObjectiveTreeController: Root list, selection, shaped tree and objective mutations
- TaskSublistManager: Task list under one objective node
- SublistRegistry: Scoped delivery of created tasks to mounted task lists
- RequestSequencer: Drops responses superseded by a newer request
- Confirmation: Two-step confirmation for destructive operations
- shape_tree: Remote objective graph -> ShapedNode tree
- ObjectiveForm / TaskForm: Validated mutation dialogs
- StorageManager: Persistence to the local state directory
- SessionManager: Bearer token and user snapshot
"""

from okrtree.managers.confirmation import Confirmation, ConfirmationState
from okrtree.managers.registry import SublistRegistry, TaskListListener
from okrtree.managers.sequencer import RequestSequencer, Ticket
from okrtree.managers.tree_shaper import shape_tree
from okrtree.managers.tree_controller import ObjectiveTreeController
from okrtree.managers.task_sublist import TaskSublistManager
from okrtree.managers.forms import FormMode, ObjectiveForm, TaskForm
from okrtree.managers.storage_manager import StorageManager
from okrtree.managers.session_manager import SessionManager, decode_token_subject

__all__ = [
    "Confirmation",
    "ConfirmationState",
    "SublistRegistry",
    "TaskListListener",
    "RequestSequencer",
    "Ticket",
    "shape_tree",
    "ObjectiveTreeController",
    "TaskSublistManager",
    "FormMode",
    "ObjectiveForm",
    "TaskForm",
    "StorageManager",
    "SessionManager",
    "decode_token_subject",
]
