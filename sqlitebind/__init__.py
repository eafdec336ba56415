from .native import (
    load_library, DBConfig,
    SQLITE_OK, SQLITE_ERROR, SQLITE_BUSY, SQLITE_LOCKED, SQLITE_CONSTRAINT,
    SQLITE_MISUSE, SQLITE_RANGE, SQLITE_CANTOPEN, SQLITE_ROW, SQLITE_DONE,
    SQLITE_INTEGER, SQLITE_FLOAT, SQLITE_TEXT, SQLITE_BLOB, SQLITE_NULL,
)
from . import native
from .exceptions import (
    Error, Warning, InterfaceError, DatabaseError, InternalError, OperationalError,
    ProgrammingError, IntegrityError, DataError, NotSupportedError,
    OpenError, PrepareError, BindError, StepError, ConstraintError, ExecError,
    ConfigError, UnsupportedConfigError, UnsupportedTypeError, BulkInsertError,
)
from .values import Value, ValueKind
from .statement import Statement, StatementState, RowCursor
from .cursor import Cursor
from .bulk import BulkInsertJob
from .connection import Connection, connect

# DB-API 2.0 Globals
apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections
paramstyle = "qmark"  # qmark (?) or named (:name), bound natively by the engine


# Types
def Binary(string):
    return bytes(string)


STRING = str
BINARY = bytes
NUMBER = float
ROWID = int


def __getattr__(name):
    # Reading the engine version needs the native library; load it on first use.
    if name == "sqlite_version":
        return native.libversion()
    if name == "sqlite_version_info":
        return native.libversion_info()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
