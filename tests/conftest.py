import pytest
from sqlalchemy.dialects import registry

registry.register("sqlite.sqlitebind", "sqlitebind_sqlalchemy.dialect", "SqliteBindDialect")
registry.register("sqlitebind", "sqlitebind_sqlalchemy.dialect", "SqliteBindDialect")

@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")
