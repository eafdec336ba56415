import collections
import ctypes
import logging
import urllib.parse
import weakref

from .bulk import BulkInsertJob
from .cursor import Cursor
from .exceptions import (
    ConfigError, Error, ExecError, OpenError, PrepareError, ProgrammingError, UnsupportedConfigError,
)
from .native import (
    load_library, errstr, DBConfig, UNSUPPORTED_DBCONFIG, DBCONFIG_MIN, DBCONFIG_MAX,
    SQLITE_OK, SQLITE_OPEN_READWRITE, SQLITE_OPEN_CREATE, SQLITE_OPEN_URI,
)
from .statement import Statement
from .transactions import TransactionMixin

logger = logging.getLogger("sqlitebind")


class Connection(TransactionMixin):
    """An open database file.

    ``options`` are passed to the engine as URI query parameters, e.g.
    ``{"mode": "ro"}``. ``stmt_cache_size`` bounds the prepared statements
    kept for reuse by cursors; 0 disables the cache.
    """

    def __init__(self, path, options=None, stmt_cache_size=128):
        self._lib = load_library()
        self.path = str(path)
        self._db = None
        self._closed = True

        filename = self.path
        flags = SQLITE_OPEN_READWRITE | SQLITE_OPEN_CREATE | SQLITE_OPEN_URI
        if options:
            query = urllib.parse.urlencode({k: str(v) for k, v in options.items()})
            filename = f"file:{urllib.parse.quote(self.path, safe='/:')}?{query}"

        db = ctypes.c_void_p()
        rc = self._lib.sqlite3_open_v2(filename.encode("utf-8"), ctypes.byref(db), flags, None)
        if rc != SQLITE_OK:
            # The engine usually still allocates a handle that carries the message.
            if db.value:
                msg = self._lib.sqlite3_errmsg(db)
                msg_str = msg.decode("utf-8", errors="replace") if msg else errstr(rc)
                self._lib.sqlite3_close_v2(db)
            else:
                msg_str = errstr(rc)
            raise OpenError(f"can't open database: {msg_str}", code=rc)

        self._db = db
        self._closed = False
        self.cursors = weakref.WeakSet()
        # Every live statement prepared here and not yet finalized.
        self._statements = weakref.WeakSet()

        # Prepared statement cache
        self._stmt_cache = collections.OrderedDict()
        self._stmt_cache_size = stmt_cache_size

        # Statistics for testing
        self._stats = collections.Counter()

    def __repr__(self):
        state = "closed" if self._closed else "open"
        return f"<Connection {self.path!r} {state}>"

    @property
    def closed(self):
        return self._closed

    def _check_open(self):
        if self._closed:
            raise ProgrammingError("Connection closed")

    def _errmsg(self, rc=None):
        code = self._lib.sqlite3_errcode(self._db)
        if rc is not None and (code & 0xFF) != (rc & 0xFF):
            return errstr(rc)
        msg = self._lib.sqlite3_errmsg(self._db)
        return msg.decode("utf-8", errors="replace") if msg else f"Unknown error {code}"

    def _forget_statement(self, stmt):
        self._statements.discard(stmt)

    def _get_cached_statement(self, sql):
        """
        Get a prepared statement from the cache if available.
        Returns None on a miss.
        """
        stmt = self._stmt_cache.pop(sql, None)
        if stmt is not None:
            self._stats['cache_hit'] += 1
            return stmt
        self._stats['cache_miss'] += 1
        return None

    def _recycle_statement(self, stmt):
        """
        Return a statement to the cache.
        Resets execution state and clears bindings.
        """
        if self._closed or stmt.finalized:
            return

        stmt.reset()
        stmt.clear_bindings()

        # If cache is disabled (size 0), finalize immediately
        if self._stmt_cache_size <= 0:
            stmt.finalize()
            return

        # Add to cache (replacing an older copy of the same SQL)
        old = self._stmt_cache.pop(stmt.sql, None)
        if old is not None and old is not stmt:
            old.finalize()
        self._stmt_cache[stmt.sql] = stmt

        # Evict if full
        while len(self._stmt_cache) > self._stmt_cache_size:
            _, evicted = self._stmt_cache.popitem(last=False)
            evicted.finalize()

    def close(self):
        if self._closed:
            logger.debug("close() called on an already closed connection to %s", self.path)
            return
        for c in list(self.cursors):
            c.close()
        self._stmt_cache.clear()
        # Statements must not outlive the handle.
        for stmt in list(self._statements):
            try:
                stmt.finalize()
            except Error as e:
                logger.warning("error finalizing statement %r on close: %s", stmt.sql, e)
        rc = self._lib.sqlite3_close_v2(self._db)
        if rc != SQLITE_OK:
            logger.warning("error closing database %s: %s", self.path, self._errmsg(rc))
        self._db = None
        self._closed = True

    def execute(self, sql):
        """Run one or more SQL statements that take no parameters."""
        self._check_open()
        err = ctypes.c_void_p()
        try:
            rc = self._lib.sqlite3_exec(self._db, sql.encode("utf-8"), None, None, ctypes.byref(err))
            if rc != SQLITE_OK:
                if err.value:
                    msg = ctypes.string_at(err.value).decode("utf-8", errors="replace")
                else:
                    msg = self._errmsg(rc)
                raise ExecError(f"error executing query: {msg}", code=rc)
        finally:
            if err.value:
                self._lib.sqlite3_free(err)

    def prepare(self, sql):
        self._check_open()
        encoded = sql.encode("utf-8")
        buf = ctypes.create_string_buffer(encoded)
        handle = ctypes.c_void_p()
        tail = ctypes.c_void_p()
        self._stats['prepare_count'] += 1
        rc = self._lib.sqlite3_prepare_v2(self._db, buf, len(encoded), ctypes.byref(handle), ctypes.byref(tail))
        if rc != SQLITE_OK:
            raise PrepareError(f"error preparing query: {self._errmsg(rc)}", code=rc)
        if not handle.value:
            raise PrepareError("error preparing query: no SQL statement")

        rest = b""
        if tail.value:
            rest = encoded[tail.value - ctypes.addressof(buf):]
        if rest.strip(b" \t\r\n;"):
            self._lib.sqlite3_finalize(handle)
            raise PrepareError("error preparing query: You can only prepare one statement at a time")

        stmt = Statement(self, handle, sql)
        self._statements.add(stmt)
        return stmt

    # Query is Prepare under the name callers use for reads.
    query = prepare

    def cursor(self):
        self._check_open()
        c = Cursor(self)
        self.cursors.add(c)
        return c

    def bulk_insert(self, sql, rows):
        """Insert every row with one prepared statement inside one transaction.

        Returns the number of rows inserted. On the first failing row the whole
        batch is rolled back and :class:`BulkInsertError` is raised.
        """
        self._check_open()
        return BulkInsertJob(sql, rows).run(self)

    def last_insert_rowid(self):
        self._check_open()
        return self._lib.sqlite3_last_insert_rowid(self._db)

    def changes(self):
        self._check_open()
        return self._lib.sqlite3_changes(self._db)

    def total_changes(self):
        self._check_open()
        return self._lib.sqlite3_total_changes(self._db)

    def error_code(self):
        self._check_open()
        return self._lib.sqlite3_errcode(self._db)

    def error_message(self):
        self._check_open()
        return self._errmsg()

    @property
    def in_transaction(self):
        self._check_open()
        return self._lib.sqlite3_get_autocommit(self._db) == 0

    def configure(self, option, value):
        """Set a ``DBConfig`` option, returning the value the engine reports back."""
        self._check_open()
        if not DBCONFIG_MIN <= option <= DBCONFIG_MAX:
            raise ConfigError(f"invalid configuration option: {int(option)}")
        option = DBConfig(option)
        if option in UNSUPPORTED_DBCONFIG:
            raise UnsupportedConfigError(f"sqlite3_db_config with SQLITE_DBCONFIG_{option.name} is not supported")

        result = ctypes.c_int(-1)
        rc = self._lib.sqlite3_db_config(
            self._db, ctypes.c_int(int(option)), ctypes.c_int(int(value)), ctypes.byref(result)
        )
        if rc != SQLITE_OK:
            raise ConfigError(f"sqlite3_db_config failed: {errstr(rc)}", code=rc)
        return result.value

    # Enable foreign key constraints
    def enable_foreign_key_constraints(self, enable=True):
        return self.configure(DBConfig.ENABLE_FKEY, 1 if enable else 0)

    # enable write-ahead logging (WAL) mode
    def enable_wal_mode(self, enable=True):
        if not enable:
            return self.enable_default_journal_mode()
        return self.execute("PRAGMA journal_mode=WAL")

    def enable_synchronous_mode(self, enable=True):
        return self.execute("PRAGMA synchronous=FULL" if enable else "PRAGMA synchronous=NORMAL")

    def enable_auto_vacuum_mode(self, enable=True):
        return self.execute("PRAGMA auto_vacuum=FULL" if enable else "PRAGMA auto_vacuum=NONE")

    # default rollback journal mode
    def enable_default_journal_mode(self):
        return self.execute("PRAGMA journal_mode=DELETE")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if not self._closed and self.in_transaction:
                if exc_type:
                    self._rollback_after_failure()
                else:
                    self.commit()
        finally:
            # Closing with a transaction still open rolls it back.
            self.close()


def connect(dsn, **kwargs):
    # dsn is the database path; stmt_cache_size is ours,
    # everything else becomes an engine URI parameter.
    stmt_cache_size = kwargs.pop("stmt_cache_size", 128)
    return Connection(dsn, kwargs, stmt_cache_size=stmt_cache_size)
