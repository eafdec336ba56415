import ctypes
import enum
import logging

from .exceptions import BindError, ConstraintError, Error, ProgrammingError, StepError, UnsupportedTypeError
from .native import (
    load_library,
    SQLITE_OK, SQLITE_ROW, SQLITE_DONE, SQLITE_RANGE, SQLITE_CONSTRAINT,
    SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_NULL,
    SQLITE_TRANSIENT,
)
from .values import Value, ValueKind

INT32_MIN = -2147483648
INT32_MAX = 2147483647

_NAMED_PREFIXES = (":", "@", "$")

logger = logging.getLogger("sqlitebind")


class StatementState(enum.Enum):
    READY = "ready"
    HAS_ROW = "has_row"
    EXHAUSTED = "exhausted"
    ERROR = "error"
    FINALIZED = "finalized"


class Statement:
    """A compiled SQL statement bound to one connection.

    Created by :meth:`Connection.prepare`. The statement moves between
    ``READY``, ``HAS_ROW``, ``EXHAUSTED`` and ``ERROR`` as it is stepped and
    reset, and ends in ``FINALIZED``. The connection finalizes every statement
    it still tracks when it closes; after that any operation raises
    :class:`ProgrammingError`.

    Column accessors follow the engine's permissive semantics: outside
    ``HAS_ROW`` they return the engine's defaults (0, 0.0, "", b"") instead of
    failing. Use :meth:`current_row` for a view that refuses stale reads.
    """

    def __init__(self, connection, handle, sql):
        self._connection = connection
        self._handle = handle
        self._lib = load_library()
        self.sql = sql
        self.state = StatementState.READY
        self._generation = 0
        self._column_names = None

        n = self._lib.sqlite3_bind_parameter_count(handle)
        names = []
        for i in range(1, n + 1):
            name = self._lib.sqlite3_bind_parameter_name(handle, i)
            names.append(name.decode("utf-8") if name is not None else None)
        self._parameter_names = tuple(names)
        self._named = any(name is not None and name[0] in _NAMED_PREFIXES for name in names)

    def __repr__(self):
        return f"<Statement state={self.state.value} sql={self.sql!r}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()

    def __del__(self):
        # Dropped without finalize(): release the handle while the connection is open.
        handle = getattr(self, "_handle", None)
        if handle is None or self._connection.closed:
            return
        try:
            self.finalize()
        except Error as e:
            logger.warning("error finalizing unreferenced statement %r: %s", self.sql, e)

    def __iter__(self):
        while self.step():
            yield self.row()

    @property
    def finalized(self):
        return self._handle is None

    def _check_live(self):
        if self._handle is None:
            raise ProgrammingError("Cannot operate on a finalized statement")

    def _error(self, cls, rc, what):
        if cls is StepError and (rc & 0xFF) == SQLITE_CONSTRAINT:
            cls = ConstraintError
        return cls(f"{what}: {self._connection._errmsg(rc)}", code=rc)

    # ======== lifecycle ========

    def step(self):
        """Advance by one row. Returns True while a row is available."""
        self._check_live()
        rc = self._lib.sqlite3_step(self._handle)
        self._generation += 1
        if rc == SQLITE_ROW:
            self.state = StatementState.HAS_ROW
            return True
        if rc == SQLITE_DONE:
            self.state = StatementState.EXHAUSTED
            return False
        self.state = StatementState.ERROR
        raise self._error(StepError, rc, "error stepping statement")

    def reset(self):
        """Return to READY. Bound values are kept."""
        self._check_live()
        previous = self.state
        rc = self._lib.sqlite3_reset(self._handle)
        self.state = StatementState.READY
        self._generation += 1
        # After a failed step the engine repeats that step's error here;
        # it has already been raised once.
        if rc != SQLITE_OK and previous is not StatementState.ERROR:
            raise self._error(StepError, rc, "error resetting statement")

    def clear_bindings(self):
        self._check_live()
        rc = self._lib.sqlite3_clear_bindings(self._handle)
        if rc != SQLITE_OK:
            raise self._error(BindError, rc, "error clearing bindings")

    def finalize(self):
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        previous = self.state
        self.state = StatementState.FINALIZED
        self._generation += 1
        self._connection._forget_statement(self)
        rc = self._lib.sqlite3_finalize(handle)
        if rc != SQLITE_OK and previous is not StatementState.ERROR:
            raise self._error(StepError, rc, "error finalizing statement")

    close = finalize

    def execute(self, *args):
        """Bind ``args`` positionally, step once and reset."""
        self.bind_all(args)
        try:
            self.step()
        finally:
            self.reset()

    # ======== binding ========

    @property
    def parameter_count(self):
        return len(self._parameter_names)

    def parameter_name(self, index):
        """Name of the 1-based parameter, including its prefix, or None for ``?``."""
        self._check_index(index)
        return self._parameter_names[index - 1]

    def _check_index(self, index):
        if index < 1 or index > len(self._parameter_names):
            raise BindError(
                f"bind index {index} out of range: statement has {len(self._parameter_names)} parameter(s)",
                code=SQLITE_RANGE,
            )

    def _checked(self, rc, index):
        if rc != SQLITE_OK:
            raise self._error(BindError, rc, f"error binding parameter {index}")

    def bind_null(self, index):
        self._check_live()
        self._check_index(index)
        self._checked(self._lib.sqlite3_bind_null(self._handle, index), index)

    def bind_int(self, index, value):
        self._check_live()
        self._check_index(index)
        if not isinstance(value, int):
            raise UnsupportedTypeError(value)
        if value < INT32_MIN or value > INT32_MAX:
            raise BindError(f"integer {value} does not fit in 32 bits, use bind_int64")
        self._checked(self._lib.sqlite3_bind_int(self._handle, index, value), index)

    def bind_int64(self, index, value):
        self._check_live()
        self._check_index(index)
        value = Value.integer(value).data
        self._checked(self._lib.sqlite3_bind_int64(self._handle, index, value), index)

    def bind_float(self, index, value):
        self._check_live()
        self._check_index(index)
        value = Value.real(value).data
        self._checked(self._lib.sqlite3_bind_double(self._handle, index, value), index)

    def bind_text(self, index, value):
        self._check_live()
        self._check_index(index)
        try:
            data = Value.text(value).data.encode("utf-8")
        except UnicodeEncodeError as e:
            raise BindError(f"error binding parameter {index}: text is not valid UTF-8: {e.reason}") from e
        rc = self._lib.sqlite3_bind_text(self._handle, index, data, len(data), SQLITE_TRANSIENT)
        self._checked(rc, index)

    def bind_blob(self, index, value):
        self._check_live()
        self._check_index(index)
        data = Value.blob(value).data
        rc = self._lib.sqlite3_bind_blob(self._handle, index, data, len(data), SQLITE_TRANSIENT)
        self._checked(rc, index)

    def bind_bool(self, index, value):
        self.bind_int(index, 1 if value else 0)

    def bind_value(self, index, value):
        kind = value.kind
        if kind is ValueKind.NULL:
            self.bind_null(index)
        elif kind is ValueKind.INTEGER:
            self.bind_int64(index, value.data)
        elif kind is ValueKind.REAL:
            self.bind_float(index, value.data)
        elif kind is ValueKind.TEXT:
            self.bind_text(index, value.data)
        elif kind is ValueKind.BLOB:
            self.bind_blob(index, value.data)
        elif kind is ValueKind.BOOLEAN:
            self.bind_bool(index, value.data)
        else:
            raise BindError(f"unknown value kind {kind!r}")

    def bind(self, index, obj):
        self.bind_value(index, Value.from_python(obj))

    def bind_all(self, values):
        self._check_live()
        if self._named:
            raise BindError("Mixed parameter styles are not supported: got positional parameters with named placeholders")
        if len(values) != len(self._parameter_names):
            raise BindError(
                f"Incorrect number of parameters: expected {len(self._parameter_names)}, got {len(values)}"
            )
        for i, value in enumerate(values):
            self.bind(i + 1, value)

    def bind_mapping(self, mapping):
        self._check_live()
        for i, name in enumerate(self._parameter_names):
            if name is None or name[0] not in _NAMED_PREFIXES:
                raise BindError("Mixed parameter styles are not supported: got named parameters with qmark placeholders")
            key = name[1:]
            if key not in mapping:
                raise BindError(f"Missing parameter '{key}'")
            self.bind(i + 1, mapping[key])

    # ======== column getters ========

    @property
    def column_count(self):
        self._check_live()
        return self._lib.sqlite3_column_count(self._handle)

    @property
    def column_names(self):
        n = self.column_count
        # the engine may re-prepare after a schema change
        if self._column_names is None or len(self._column_names) != n:
            names = []
            for i in range(n):
                name = self._lib.sqlite3_column_name(self._handle, i)
                names.append(name.decode("utf-8") if name is not None else "")
            self._column_names = tuple(names)
        return self._column_names

    def column_type(self, index):
        self._check_live()
        return self._lib.sqlite3_column_type(self._handle, index)

    def is_column_null(self, index):
        return self.column_type(index) == SQLITE_NULL

    def column_int(self, index):
        self._check_live()
        return self._lib.sqlite3_column_int(self._handle, index)

    def column_int64(self, index):
        self._check_live()
        return self._lib.sqlite3_column_int64(self._handle, index)

    def column_float(self, index):
        self._check_live()
        return self._lib.sqlite3_column_double(self._handle, index)

    # SQLite has no boolean type: 1 is true, anything else false.
    def column_bool(self, index):
        return self.column_int64(index) == 1

    def column_text(self, index):
        self._check_live()
        # sqlite3_column_bytes must follow sqlite3_column_text.
        ptr = self._lib.sqlite3_column_text(self._handle, index)
        if not ptr:
            return ""
        length = self._lib.sqlite3_column_bytes(self._handle, index)
        return ctypes.string_at(ptr, length).decode("utf-8", errors="replace")

    def column_blob(self, index):
        self._check_live()
        ptr = self._lib.sqlite3_column_blob(self._handle, index)
        if not ptr:
            return b""
        length = self._lib.sqlite3_column_bytes(self._handle, index)
        return ctypes.string_at(ptr, length)

    def column_value(self, index):
        kind = self.column_type(index)
        if kind == SQLITE_INTEGER:
            return Value(ValueKind.INTEGER, self.column_int64(index))
        if kind == SQLITE_FLOAT:
            return Value(ValueKind.REAL, self.column_float(index))
        if kind == SQLITE_TEXT:
            return Value(ValueKind.TEXT, self.column_text(index))
        if kind == SQLITE_BLOB:
            return Value(ValueKind.BLOB, self.column_blob(index))
        return Value.null()

    def column(self, index):
        return self.column_value(index).to_python()

    def row(self):
        return tuple(self.column(i) for i in range(self.column_count))

    def current_row(self):
        if self.state is not StatementState.HAS_ROW:
            raise ProgrammingError(f"No current row: statement is {self.state.value}")
        return RowCursor(self)


class RowCursor:
    """Read-only view of the row a statement is positioned on.

    Accessors raise :class:`ProgrammingError` once the statement has been
    stepped, reset or finalized. Returned text and bytes are independent
    copies.
    """

    __slots__ = ("_statement", "_generation")

    def __init__(self, statement):
        self._statement = statement
        self._generation = statement._generation

    def _live(self):
        stmt = self._statement
        if stmt.finalized or stmt._generation != self._generation:
            raise ProgrammingError("Row is no longer current")
        return stmt

    def __len__(self):
        return self._live().column_count

    def __getitem__(self, key):
        stmt = self._live()
        if isinstance(key, str):
            try:
                key = stmt.column_names.index(key)
            except ValueError:
                raise KeyError(key) from None
        return stmt.column(key)

    def keys(self):
        return self._live().column_names

    def values(self):
        return self._live().row()

    def as_dict(self):
        return dict(zip(self.keys(), self.values()))

    def column_int(self, index):
        return self._live().column_int(index)

    def column_int64(self, index):
        return self._live().column_int64(index)

    def column_float(self, index):
        return self._live().column_float(index)

    def column_text(self, index):
        return self._live().column_text(index)

    def column_blob(self, index):
        return self._live().column_blob(index)

    def column_bool(self, index):
        return self._live().column_bool(index)

    def is_null(self, index):
        return self._live().is_column_null(index)
