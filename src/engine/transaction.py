"""All-or-nothing execution and reentrancy guarding."""

import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Set, Tuple

from src.core.errors import ReentrantCallError
from src.core.interfaces import Transactional

logger = logging.getLogger(__name__)


class TransactionManager:
    """
    Checkpoints every registered participant at the start of the outermost
    operation and restores all of them if that operation raises.

    Nested operations (a pool call made from a controller liquidation, or an
    authorization query made from a pool) join the outer transaction, so a
    failure anywhere in the call tree rolls back the whole tree.
    """

    def __init__(self):
        self._participants: List[Transactional] = []
        self._depth = 0
        self._locked: Set[str] = set()
        self._compensations: List[Callable[[], None]] = []

    def register(self, participant: Transactional) -> None:
        """Add a participant whose state is rolled back on failure."""
        if self.is_registered(participant):
            return
        self._participants.append(participant)

    def is_registered(self, participant: Any) -> bool:
        return any(p is participant for p in self._participants)

    def on_rollback(self, compensation: Callable[[], None]) -> None:
        """
        Undo an external effect if the current transaction rolls back.

        For collaborators that cannot checkpoint themselves. Compensations run
        after every participant is restored, most recent first.
        """
        if self._depth > 0:
            self._compensations.append(compensation)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the enclosed block as one all-or-nothing transaction."""
        snapshots: List[Tuple[Transactional, Any]] = []
        outermost = self._depth == 0
        if outermost:
            snapshots = [(p, p.checkpoint()) for p in self._participants]

        self._depth += 1
        try:
            yield
        except BaseException:
            if outermost:
                for participant, snapshot in snapshots:
                    participant.restore(snapshot)
                compensations, self._compensations = self._compensations, []
                for compensation in reversed(compensations):
                    compensation()
                logger.debug(
                    f"Rolled back {len(snapshots)} participants, "
                    f"{len(compensations)} external effects"
                )
            raise
        else:
            if outermost:
                self._compensations = []
        finally:
            self._depth -= 1

    @contextmanager
    def guard(self, key: str) -> Iterator[None]:
        """Non-reentrant section scoped to one pool."""
        if key in self._locked:
            raise ReentrantCallError(key)
        self._locked.add(key)
        try:
            yield
        finally:
            self._locked.discard(key)


def transactional(method: Callable) -> Callable:
    """
    Make a pool mutation atomic and non-reentrant.

    The pool must expose ``controller.transactions`` and ``market_id``.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        transactions = self.controller.transactions
        with transactions.atomic(), transactions.guard(self.market_id):
            return method(self, *args, **kwargs)

    return wrapper
