import pytest
from sqlalchemy import create_engine, text, MetaData, Table, Column, Integer, String, Boolean
from sqlalchemy.orm import Session, declarative_base, Mapped, mapped_column

import sqlitebind

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str]


def test_core_basic(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}")

    with engine.connect() as conn:
        conn.execute(text("CREATE TABLE users (id INTEGER, name TEXT)"))
        conn.execute(text("INSERT INTO users VALUES (:id, :name)"), {"id": 1, "name": "Alice"})
        conn.commit()

        result = conn.execute(text("SELECT * FROM users"))
        row = result.fetchone()
        assert row[0] == 1
        assert row[1] == "Alice"

    engine.dispose()


def test_dialect_wiring(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}?stmt_cache_size=4")
    assert engine.dialect.driver == "sqlitebind"
    assert engine.dialect.dbapi is sqlitebind

    with engine.connect() as conn:
        raw = conn.connection.dbapi_connection
        assert isinstance(raw, sqlitebind.Connection)
        assert raw._stmt_cache_size == 4
        assert raw.path == db_path

    engine.dispose()


def test_rollback(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}")
    with engine.connect() as conn:
        conn.execute(text("CREATE TABLE items (id INTEGER)"))
        conn.commit()

        conn.execute(text("INSERT INTO items VALUES (1)"))
        conn.rollback()

        assert conn.execute(text("SELECT count(*) FROM items")).scalar() == 0

    engine.dispose()


def test_begin_block_rolls_back_on_error(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE items (id INTEGER)"))

    with pytest.raises(RuntimeError):
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO items VALUES (1)"))
            raise RuntimeError("abort")

    with engine.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM items")).scalar() == 0

    engine.dispose()


def test_metadata_create_all(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}")
    metadata = MetaData()
    t = Table("items", metadata,
        Column("id", Integer, primary_key=True),
        Column("val", String),
        Column("done", Boolean),
    )

    metadata.create_all(engine)

    with engine.connect() as conn:
        conn.execute(t.insert(), [
            {"id": 1, "val": "test", "done": False},
            {"id": 2, "val": "more", "done": True},
        ])
        conn.commit()

        rows = conn.execute(t.select().order_by(t.c.id)).fetchall()
        assert [(r.id, r.val, r.done) for r in rows] == [(1, "test", False), (2, "more", True)]

    engine.dispose()


def test_orm_crud(db_path):
    engine = create_engine(f"sqlite+sqlitebind:///{db_path}")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        session.add(User(id=1, name="Bob"))
        session.commit()

    with Session(engine) as session:
        u = session.get(User, 1)
        assert u is not None
        assert u.name == "Bob"

        u.name = "Bobby"
        session.commit()

    with Session(engine) as session:
        u = session.get(User, 1)
        assert u.name == "Bobby"

        session.delete(u)
        session.commit()

    with Session(engine) as session:
        assert session.get(User, 1) is None

    engine.dispose()
