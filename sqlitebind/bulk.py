from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Sequence

from .exceptions import BindError, BulkInsertError, Error, StepError, UnsupportedTypeError

logger = logging.getLogger("sqlitebind")


@dataclasses.dataclass
class BulkInsertJob:
    """One parameterized statement executed for many rows in one transaction.

    ``rows`` is consumed once, lazily; each row must supply exactly as many
    values as the statement has placeholders. Either every row is committed
    or none is.
    """

    sql: str
    rows: Iterable[Sequence[Any]]

    def run(self, connection) -> int:
        stmt = connection.prepare(self.sql)
        try:
            connection.begin()
        except Error:
            stmt.finalize()
            raise

        try:
            count = self._insert_rows(stmt)
        except BaseException:
            stmt.finalize()
            connection._rollback_after_failure()
            raise

        stmt.finalize()
        try:
            connection.commit()
        except Error:
            connection._rollback_after_failure()
            raise
        logger.debug("bulk insert committed %d rows", count)
        return count

    def _insert_rows(self, stmt) -> int:
        n = stmt.parameter_count
        count = 0
        for i, row in enumerate(self.rows):
            if len(row) != n:
                raise BulkInsertError(f"expected {n} values, got {len(row)}", row=i)
            for j, value in enumerate(row):
                try:
                    stmt.bind(j + 1, value)
                except (BindError, UnsupportedTypeError) as e:
                    raise BulkInsertError(str(e), row=i, column=j, code=e.code) from e
            try:
                has_row = stmt.step()
            except StepError as e:
                raise BulkInsertError(str(e), row=i, code=e.code) from e
            if has_row:
                raise BulkInsertError("statement returned rows", row=i)
            stmt.reset()
            count += 1
        return count
