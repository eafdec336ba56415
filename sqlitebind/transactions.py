import contextlib
import logging

from .exceptions import Error, ProgrammingError

logger = logging.getLogger("sqlitebind")

_BEGIN_MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")


class TransactionMixin:
    """BEGIN/COMMIT/ROLLBACK on top of ``execute``.

    Mixed into :class:`~sqlitebind.connection.Connection`.
    """

    def begin(self, mode=None):
        if mode is None:
            return self.execute("BEGIN TRANSACTION")
        mode = mode.upper()
        if mode not in _BEGIN_MODES:
            raise ProgrammingError(f"Invalid transaction mode: {mode}")
        return self.execute(f"BEGIN {mode} TRANSACTION")

    def commit(self):
        return self.execute("COMMIT")

    def rollback(self):
        return self.execute("ROLLBACK")

    def _rollback_after_failure(self):
        # The failure that got us here is the one the caller sees.
        try:
            self.rollback()
        except Error as e:
            logger.warning("rollback after failed unit of work also failed: %s", e)

    def run_in_transaction(self, work, *args, **kwargs):
        """Run ``work(*args, **kwargs)`` inside one transaction.

        Commits and returns the result of ``work``. If ``work`` raises, the
        transaction is rolled back and the original exception propagates.
        """
        self.begin()
        try:
            result = work(*args, **kwargs)
        except BaseException:
            self._rollback_after_failure()
            raise
        try:
            self.commit()
        except Error:
            self._rollback_after_failure()
            raise
        return result

    @contextlib.contextmanager
    def transaction(self, mode=None):
        self.begin(mode)
        try:
            yield self
        except BaseException:
            self._rollback_after_failure()
            raise
        try:
            self.commit()
        except Error:
            self._rollback_after_failure()
            raise
