from .dialect import SqliteBindDialect

__all__ = ["SqliteBindDialect"]
