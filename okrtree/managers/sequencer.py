"""
Request sequencing for out-of-order responses.

Every fetch takes a ticket for its target key before awaiting the network.
Only the holder of the most recently issued ticket for a key may apply its
result; anything older is stale and must be dropped.
"""

import itertools
from dataclasses import dataclass
from typing import Awaitable, Dict, Hashable, TypeVar

from okrtree.exceptions import OkrError, StaleResponseDiscarded

T = TypeVar("T")


@dataclass(frozen=True)
class Ticket:
    """Generation token for one in-flight request."""

    key: Hashable
    generation: int


class RequestSequencer:
    """Per-key generation counter. One instance per owning component."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest: Dict[Hashable, int] = {}

    def issue(self, key: Hashable) -> Ticket:
        """Issue a ticket that supersedes all earlier tickets for `key`."""
        ticket = Ticket(key, next(self._counter))
        self._latest[key] = ticket.generation
        return ticket

    def is_current(self, ticket: Ticket) -> bool:
        return self._latest.get(ticket.key) == ticket.generation

    def ensure_current(self, ticket: Ticket) -> None:
        """
        Raises:
            StaleResponseDiscarded: If a newer ticket was issued for the same key.
        """
        if not self.is_current(ticket):
            raise StaleResponseDiscarded(
                f"Response for {ticket.key!r} (generation {ticket.generation}) superseded"
            )

    async def run(self, ticket: Ticket, awaitable: Awaitable[T]) -> T:
        """
        Await a request issued under `ticket` and return its result.

        A superseded request is stale whether it succeeded or failed.

        Raises:
            StaleResponseDiscarded: If a newer ticket was issued meanwhile.
            OkrError: Whatever the request raised, when still current.
        """
        try:
            result = await awaitable
        except OkrError:
            self.ensure_current(ticket)
            raise
        self.ensure_current(ticket)
        return result
