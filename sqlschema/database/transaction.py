"""Transaction bookkeeping over a DB-API connection."""

import logging
from typing import TYPE_CHECKING

from ..errors import TransactionStateError

if TYPE_CHECKING:
    from .connection import DbApiConnection

logger = logging.getLogger(__name__)

INACTIVE_MESSAGE = "Transaction is inactive and cannot perform commit or roll back operations."


class Transaction:
    """A database transaction, created by ``DbApiConnection.begin_transaction``.

    Typical usage:

        with connection.begin_transaction():
            connection.execute(sql1)
            connection.execute(sql2)

    The context manager commits when the block succeeds and rolls back when
    it raises. Calling ``commit`` or ``rollback`` explicitly on a transaction
    that has already finished raises ``TransactionStateError``.
    """

    def __init__(self, connection: "DbApiConnection"):
        self._connection = connection
        self._active = True

    @property
    def connection(self) -> "DbApiConnection":
        return self._connection

    @property
    def active(self) -> bool:
        return self._active

    def _check_active(self, operation: str) -> None:
        if not (self._active and self._connection.is_active):
            raise TransactionStateError(
                INACTIVE_MESSAGE,
                details={
                    "operation": operation,
                    "transaction_active": self._active,
                    "connection_active": self._connection.is_active,
                },
            )

    def commit(self) -> None:
        """Commit the transaction."""
        self._check_active("commit")
        self._connection.raw.commit()
        self._active = False
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Roll back the transaction."""
        self._check_active("rollback")
        self._connection.raw.rollback()
        self._active = False
        logger.debug("Transaction rolled back")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._active:
            return False
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False
