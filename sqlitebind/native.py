import ctypes
import ctypes.util
import enum
import logging
import os
import sys
from ctypes import c_int, c_int64, c_double, c_char_p, c_void_p, POINTER

logger = logging.getLogger("sqlitebind")

# Primary result codes (must match sqlite3.h).
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_ROW = 100
SQLITE_DONE = 101

# Fundamental datatypes reported by sqlite3_column_type.
SQLITE_INTEGER = 1
SQLITE_FLOAT = 2
SQLITE_TEXT = 3
SQLITE_BLOB = 4
SQLITE_NULL = 5

# Flags for sqlite3_open_v2.
SQLITE_OPEN_READONLY = 0x00000001
SQLITE_OPEN_READWRITE = 0x00000002
SQLITE_OPEN_CREATE = 0x00000004
SQLITE_OPEN_URI = 0x00000040

# Destructor sentinel: the engine takes its own copy of text/blob data
# before the bind call returns.
SQLITE_TRANSIENT = c_void_p(-1)


class DBConfig(enum.IntEnum):
    """Option identifiers for sqlite3_db_config.

    https://www.sqlite.org/c3ref/c_dbconfig_defensive.html
    """

    MAINDBNAME = 1000  # takes a const char*, not an int
    LOOKASIDE = 1001  # allocator-style, three arguments
    ENABLE_FKEY = 1002
    ENABLE_TRIGGER = 1003
    ENABLE_FTS3_TOKENIZER = 1004
    ENABLE_LOAD_EXTENSION = 1005
    NO_CKPT_ON_CLOSE = 1006
    ENABLE_QPSG = 1007
    TRIGGER_EQP = 1008
    RESET_DATABASE = 1009
    DEFENSIVE = 1010
    WRITABLE_SCHEMA = 1011
    LEGACY_ALTER_TABLE = 1012
    DQS_DML = 1013
    DQS_DDL = 1014
    ENABLE_VIEW = 1015
    LEGACY_FILE_FORMAT = 1016
    TRUSTED_SCHEMA = 1017
    STMT_SCANSTATUS = 1018
    REVERSE_SCANORDER = 1019


DBCONFIG_MIN = DBConfig.MAINDBNAME
DBCONFIG_MAX = DBConfig.REVERSE_SCANORDER

# Options whose calling convention is not (int, int*).
UNSUPPORTED_DBCONFIG = frozenset({DBConfig.MAINDBNAME, DBConfig.LOOKASIDE})

_lib = None


def _candidate_paths():
    env_path = os.environ.get("SQLITEBIND_NATIVE_LIB")
    if env_path:
        # An explicit override is the only candidate.
        return [env_path]

    candidates = []
    found = ctypes.util.find_library("sqlite3")
    if found:
        candidates.append(found)

    if sys.platform == "darwin":
        candidates += ["libsqlite3.dylib", "/usr/lib/libsqlite3.dylib"]
    elif sys.platform == "win32":
        candidates += ["sqlite3.dll", "winsqlite3.dll"]
    else:
        candidates += ["libsqlite3.so.0", "libsqlite3.so"]

    # The interpreter's own sqlite3 extension, when it exports the C API.
    try:
        import _sqlite3
    except ImportError:
        pass
    else:
        ext_path = getattr(_sqlite3, "__file__", None)
        if ext_path:
            candidates.append(ext_path)
    return candidates


def load_library():
    global _lib
    if _lib is not None:
        return _lib

    lib = None
    errors = []
    for path in _candidate_paths():
        try:
            candidate = ctypes.CDLL(path)
        except OSError as e:
            errors.append(f"{path}: {e}")
            continue
        if not hasattr(candidate, "sqlite3_open_v2"):
            errors.append(f"{path}: does not export sqlite3_open_v2")
            continue
        lib = candidate
        logger.debug("loaded sqlite native library from %s", path)
        break

    if lib is None:
        raise RuntimeError(
            "Could not find the sqlite3 native library. Set SQLITEBIND_NATIVE_LIB env var. "
            "Tried: " + "; ".join(errors)
        )

    # Define signatures

    # Connection lifecycle
    lib.sqlite3_open_v2.argtypes = [c_char_p, POINTER(c_void_p), c_int, c_char_p]
    lib.sqlite3_open_v2.restype = c_int

    lib.sqlite3_close_v2.argtypes = [c_void_p]
    lib.sqlite3_close_v2.restype = c_int

    # One-shot execution; the error message is engine-allocated (caller frees)
    lib.sqlite3_exec.argtypes = [c_void_p, c_char_p, c_void_p, c_void_p, POINTER(c_void_p)]
    lib.sqlite3_exec.restype = c_int

    lib.sqlite3_free.argtypes = [c_void_p]
    lib.sqlite3_free.restype = None

    # Statement lifecycle. The SQL is passed as a buffer so the tail pointer
    # can be turned back into an offset.
    lib.sqlite3_prepare_v2.argtypes = [c_void_p, c_void_p, c_int, POINTER(c_void_p), POINTER(c_void_p)]
    lib.sqlite3_prepare_v2.restype = c_int

    lib.sqlite3_step.argtypes = [c_void_p]
    lib.sqlite3_step.restype = c_int

    lib.sqlite3_reset.argtypes = [c_void_p]
    lib.sqlite3_reset.restype = c_int

    lib.sqlite3_finalize.argtypes = [c_void_p]
    lib.sqlite3_finalize.restype = c_int

    lib.sqlite3_clear_bindings.argtypes = [c_void_p]
    lib.sqlite3_clear_bindings.restype = c_int

    # Bindings
    lib.sqlite3_bind_null.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_null.restype = c_int

    lib.sqlite3_bind_int.argtypes = [c_void_p, c_int, c_int]
    lib.sqlite3_bind_int.restype = c_int

    lib.sqlite3_bind_int64.argtypes = [c_void_p, c_int, c_int64]
    lib.sqlite3_bind_int64.restype = c_int

    lib.sqlite3_bind_double.argtypes = [c_void_p, c_int, c_double]
    lib.sqlite3_bind_double.restype = c_int

    lib.sqlite3_bind_text.argtypes = [c_void_p, c_int, c_char_p, c_int, c_void_p]
    lib.sqlite3_bind_text.restype = c_int

    lib.sqlite3_bind_blob.argtypes = [c_void_p, c_int, c_char_p, c_int, c_void_p]
    lib.sqlite3_bind_blob.restype = c_int

    lib.sqlite3_bind_parameter_count.argtypes = [c_void_p]
    lib.sqlite3_bind_parameter_count.restype = c_int

    lib.sqlite3_bind_parameter_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_bind_parameter_name.restype = c_char_p

    # Columns
    lib.sqlite3_column_count.argtypes = [c_void_p]
    lib.sqlite3_column_count.restype = c_int

    lib.sqlite3_column_name.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_name.restype = c_char_p

    lib.sqlite3_column_type.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_type.restype = c_int

    lib.sqlite3_column_int.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_int.restype = c_int

    lib.sqlite3_column_int64.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_int64.restype = c_int64

    lib.sqlite3_column_double.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_double.restype = c_double

    # Pointers, not c_char_p: values are read by explicit length so
    # embedded NUL bytes survive.
    lib.sqlite3_column_text.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_text.restype = c_void_p

    lib.sqlite3_column_blob.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_blob.restype = c_void_p

    lib.sqlite3_column_bytes.argtypes = [c_void_p, c_int]
    lib.sqlite3_column_bytes.restype = c_int

    # Connection introspection
    lib.sqlite3_last_insert_rowid.argtypes = [c_void_p]
    lib.sqlite3_last_insert_rowid.restype = c_int64

    lib.sqlite3_changes.argtypes = [c_void_p]
    lib.sqlite3_changes.restype = c_int

    lib.sqlite3_total_changes.argtypes = [c_void_p]
    lib.sqlite3_total_changes.restype = c_int

    lib.sqlite3_errcode.argtypes = [c_void_p]
    lib.sqlite3_errcode.restype = c_int

    lib.sqlite3_errmsg.argtypes = [c_void_p]
    lib.sqlite3_errmsg.restype = c_char_p

    lib.sqlite3_errstr.argtypes = [c_int]
    lib.sqlite3_errstr.restype = c_char_p

    lib.sqlite3_get_autocommit.argtypes = [c_void_p]
    lib.sqlite3_get_autocommit.restype = c_int

    lib.sqlite3_libversion.argtypes = []
    lib.sqlite3_libversion.restype = c_char_p

    # sqlite3_db_config is variadic: no argtypes, every argument is passed
    # as an explicit ctypes instance.
    lib.sqlite3_db_config.restype = c_int

    _lib = lib
    return _lib


def libversion():
    return load_library().sqlite3_libversion().decode("ascii")


def libversion_info():
    return tuple(int(part) for part in libversion().split("."))


def errstr(code):
    msg = load_library().sqlite3_errstr(code)
    return msg.decode("utf-8", errors="replace") if msg else f"Unknown error {code}"
