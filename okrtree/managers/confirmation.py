"""
Two-step confirmation for destructive operations.

    idle --request(target)--> pending --confirm--> executing --done--> idle
    pending --cancel--> idle

Each destructive flow (objective delete, task delete) owns its own instance.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from okrtree.exceptions import InvalidOperationError


class ConfirmationState(str, Enum):
    """States of a pending destructive operation."""

    IDLE = "idle"
    PENDING = "pending"
    EXECUTING = "executing"


class Confirmation:
    """
    Tracks one destructive operation awaiting explicit user confirmation.

    Args:
        warning: Text shown to the user when a request is made.
    """

    def __init__(self, warning: str) -> None:
        self.warning = warning
        self.state = ConfirmationState.IDLE
        self.target: Optional[Any] = None

    @property
    def is_pending(self) -> bool:
        return self.state == ConfirmationState.PENDING

    def request(self, target: Any) -> str:
        """
        Move to pending for `target`. A new request replaces a pending one.

        Returns:
            The warning to show before confirming.

        Raises:
            InvalidOperationError: If an operation is already executing.
        """
        if self.state == ConfirmationState.EXECUTING:
            raise InvalidOperationError("A delete is already in progress.")
        self.state = ConfirmationState.PENDING
        self.target = target
        return self.warning

    def cancel(self) -> None:
        """Abandon a pending request. No effect when idle."""
        if self.state == ConfirmationState.EXECUTING:
            raise InvalidOperationError("Cannot cancel a delete that is already executing.")
        self.state = ConfirmationState.IDLE
        self.target = None

    async def confirm(self, execute: Callable[[Any], Awaitable[Any]]) -> Any:
        """
        Run `execute(target)` for the pending request.

        The state returns to idle whether or not `execute` succeeds; its
        exceptions propagate to the caller.

        Raises:
            InvalidOperationError: If nothing is pending.
        """
        if self.state != ConfirmationState.PENDING:
            raise InvalidOperationError("Nothing is pending confirmation.")
        self.state = ConfirmationState.EXECUTING
        try:
            return await execute(self.target)
        finally:
            self.state = ConfirmationState.IDLE
            self.target = None
