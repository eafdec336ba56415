class Error(Exception):
    """Base class for every error raised by sqlitebind.

    ``code`` is the engine result code when the error originated in the
    engine, otherwise ``None``.
    """

    def __init__(self, message="", *, code=None):
        super().__init__(message)
        self.code = code


class Warning(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class OpenError(OperationalError):
    """The database file could not be opened or created."""


class PrepareError(ProgrammingError):
    """The SQL text could not be compiled."""


class BindError(ProgrammingError):
    """A parameter index was out of range or the engine rejected the value."""


class StepError(DatabaseError):
    """The engine reported something other than a row or completion."""


class ConstraintError(StepError, IntegrityError):
    pass


class ExecError(DatabaseError):
    """One-shot execution failed."""


class ConfigError(DatabaseError):
    pass


class UnsupportedConfigError(ConfigError, NotSupportedError):
    pass


class UnsupportedTypeError(ProgrammingError, TypeError):
    """A value outside the closed set of bindable types."""

    def __init__(self, value):
        self.value_type = type(value)
        super().__init__(f"unsupported type {self.value_type.__qualname__}")


class BulkInsertError(DatabaseError):
    """A bulk insert was rolled back.

    ``row`` is the 0-based index of the failing row and ``column`` the
    0-based column index when the failure happened while binding it.
    """

    def __init__(self, message, *, row, column=None, code=None):
        where = f"row {row}" if column is None else f"row {row}, column {column}"
        super().__init__(f"bulk insert failed at {where}: {message}", code=code)
        self.row = row
        self.column = column
