import collections.abc

from .exceptions import ProgrammingError, StepError


class Cursor:
    def __init__(self, connection):
        self.connection = connection
        self._stmt = None
        self._row = None
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self.arraysize = 1
        self._closed = False

    def close(self):
        if self._closed:
            return
        if self._stmt is not None:
            # Return to cache instead of finalizing directly
            self.connection._recycle_statement(self._stmt)
            self._stmt = None
            self._row = None
        self._closed = True

    def _check_open(self):
        if self._closed:
            raise ProgrammingError("Cursor is closed")
        self.connection._check_open()

    def _statement_for(self, operation):
        if self._stmt is not None:
            if self._stmt.sql == operation and not self._stmt.finalized:
                # Same SQL: rebind over the old values.
                self._stmt.reset()
                return self._stmt
            # Different SQL. Recycle old one.
            self.connection._recycle_statement(self._stmt)
            self._stmt = None

        stmt = self.connection._get_cached_statement(operation)
        if stmt is None:
            stmt = self.connection.prepare(operation)
        self._stmt = stmt
        return stmt

    def _bind(self, stmt, parameters):
        if parameters is None:
            parameters = ()
        if isinstance(parameters, collections.abc.Mapping):
            stmt.bind_mapping(parameters)
        else:
            stmt.bind_all(parameters)

    def _advance(self):
        try:
            has_row = self._stmt.step()
        except StepError:
            self._row = None
            self._stmt.reset()
            raise
        if has_row:
            self._row = self._stmt.row()
        else:
            # Done: release the engine's read/write locks right away.
            self._row = None
            self._stmt.reset()

    def execute(self, operation, parameters=None):
        self._check_open()
        self._row = None
        self.description = None
        self.rowcount = -1
        stmt = self._statement_for(operation)
        self._bind(stmt, parameters)

        before = self.connection.total_changes()
        # Step once even for row-returning statements so PRAGMAs and
        # RETURNING clauses take effect without a fetch.
        self._advance()

        if stmt.column_count > 0:
            self.description = tuple(
                (name, None, None, None, None, None, None) for name in stmt.column_names
            )
            self.rowcount = -1
        else:
            self.description = None
            self.rowcount = self.connection.total_changes() - before
        self.lastrowid = self.connection.last_insert_rowid()
        return self

    def executemany(self, operation, seq_of_parameters):
        total = 0
        for params in seq_of_parameters:
            self.execute(operation, params)
            if self.rowcount > 0:
                total += self.rowcount
        self.rowcount = total
        return self

    def fetchone(self):
        self._check_open()
        if self._stmt is None:
            raise ProgrammingError("No statement")
        row = self._row
        if row is None:
            return None
        self._advance()
        return row

    def fetchmany(self, size=None):
        if size is None:
            size = self.arraysize
        rows = []
        for _ in range(size):
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def fetchall(self):
        rows = []
        while True:
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def setinputsizes(self, sizes):
        pass

    def setoutputsize(self, size, column=None):
        pass

    def __iter__(self):
        return self

    def __next__(self):
        r = self.fetchone()
        if r is None:
            raise StopIteration
        return r
