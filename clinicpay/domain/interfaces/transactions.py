"""Transaction boundary interface."""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class UnitOfWork(ABC):
    """
    The transaction a service call runs in.

    The outer transaction is owned by the caller (one per request); services
    only open savepoints so a failed best-effort write can be rolled back
    without losing the rest of the operation.
    """

    @abstractmethod
    def savepoint(self) -> AsyncContextManager[None]:
        """
        Open a nested transaction.

        Exiting with an exception rolls back only the work done inside
        the block and re-raises.
        """
        ...
