import logging

import pytest
import sqlitebind


@pytest.fixture
def conn(db_path):
    c = sqlitebind.connect(db_path)
    c.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY, balance INTEGER)")
    yield c
    c.close()


def balances(conn):
    with conn.query("SELECT balance FROM accounts ORDER BY id") as q:
        return [row[0] for row in q]


def test_commit_is_durable(db_path):
    conn = sqlitebind.connect(db_path)
    conn.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY, balance INTEGER)")

    def work():
        conn.execute("INSERT INTO accounts (balance) VALUES (100)")
        conn.execute("INSERT INTO accounts (balance) VALUES (50)")

    conn.run_in_transaction(work)
    assert not conn.in_transaction
    conn.close()

    conn = sqlitebind.connect(db_path)
    assert balances(conn) == [100, 50]
    conn.close()


def test_rollback_on_exception(db_path):
    conn = sqlitebind.connect(db_path)
    conn.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY, balance INTEGER)")

    def work():
        conn.execute("INSERT INTO accounts (balance) VALUES (100)")
        raise ValueError("insufficient funds")

    with pytest.raises(ValueError, match="insufficient funds"):
        conn.run_in_transaction(work)
    assert not conn.in_transaction
    conn.close()

    conn = sqlitebind.connect(db_path)
    assert balances(conn) == []
    conn.close()


def test_run_in_transaction_passes_arguments(conn):
    def deposit(amount, *, times=1):
        for _ in range(times):
            conn.execute(f"INSERT INTO accounts (balance) VALUES ({amount})")
        return amount * times

    assert conn.run_in_transaction(deposit, 10, times=3) == 30
    assert balances(conn) == [10, 10, 10]


def test_rollback_failure_does_not_mask_error(conn, caplog):
    def work():
        # Ending the transaction early makes the rollback fail.
        conn.commit()
        raise KeyError("original")

    with caplog.at_level(logging.WARNING, logger="sqlitebind"):
        with pytest.raises(KeyError, match="original"):
            conn.run_in_transaction(work)

    assert "rollback after failed unit of work also failed" in caplog.text


def test_failed_commit_rolls_back(conn):
    def work():
        conn.execute("INSERT INTO accounts (balance) VALUES (1)")
        # The commit that follows has nothing to commit.
        conn.rollback()

    with pytest.raises(sqlitebind.ExecError):
        conn.run_in_transaction(work)
    assert not conn.in_transaction


def test_transaction_context_manager(conn):
    with conn.transaction() as tx:
        assert tx is conn
        assert conn.in_transaction
        conn.execute("INSERT INTO accounts (balance) VALUES (5)")
    assert not conn.in_transaction
    assert balances(conn) == [5]

    with pytest.raises(RuntimeError):
        with conn.transaction("immediate"):
            conn.execute("INSERT INTO accounts (balance) VALUES (6)")
            raise RuntimeError("abort")
    assert not conn.in_transaction
    assert balances(conn) == [5]


def test_begin_modes(conn):
    for mode in ("DEFERRED", "immediate", "Exclusive"):
        conn.begin(mode)
        assert conn.in_transaction
        conn.rollback()
        assert not conn.in_transaction

    with pytest.raises(sqlitebind.ProgrammingError, match="Invalid transaction mode"):
        conn.begin("sideways")
    assert not conn.in_transaction


def test_commit_without_begin(conn):
    with pytest.raises(sqlitebind.ExecError) as excinfo:
        conn.commit()
    assert "no transaction is active" in str(excinfo.value)

    with pytest.raises(sqlitebind.ExecError):
        conn.rollback()


def test_nested_begin_fails(conn):
    conn.begin()
    with pytest.raises(sqlitebind.ExecError):
        conn.begin()
    assert conn.in_transaction
    conn.rollback()
