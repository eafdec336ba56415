from sqlalchemy.dialects.sqlite.base import SQLiteDialect

import sqlitebind


class SqliteBindDialect(SQLiteDialect):
    """SQLite dialect running on the sqlitebind DB-API module.

    SQL compilation, type mapping and reflection are SQLAlchemy's own SQLite
    implementation; only the driver hooks live here.
    URL form: ``sqlite+sqlitebind:///path/to.db``.
    """

    driver = "sqlitebind"
    supports_statement_cache = True

    default_paramstyle = "qmark"

    @classmethod
    def import_dbapi(cls):
        return sqlitebind

    def create_connect_args(self, url):
        # url is sqlite+sqlitebind:////path/to.db
        # path is url.database, query options become connect() kwargs
        opts = dict(url.query)
        if "stmt_cache_size" in opts:
            opts["stmt_cache_size"] = int(opts["stmt_cache_size"])

        path = url.database
        if not path:
            path = ":memory:"

        return ([path], opts)

    # The driver runs in autocommit until told otherwise: SQLAlchemy's
    # transaction boundaries become explicit BEGIN/COMMIT/ROLLBACK.
    def do_begin(self, dbapi_connection):
        if not dbapi_connection.in_transaction:
            dbapi_connection.begin()

    def do_rollback(self, dbapi_connection):
        if dbapi_connection.in_transaction:
            dbapi_connection.rollback()

    def do_commit(self, dbapi_connection):
        if dbapi_connection.in_transaction:
            dbapi_connection.commit()

    def do_close(self, dbapi_connection):
        dbapi_connection.close()


dialect = SqliteBindDialect
