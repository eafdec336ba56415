"""Example: a small todo list on top of sqlitebind.

Run:
    python examples/todos.py

Set SQLITEBIND_NATIVE_LIB=/path/to/libsqlite3.so if the library is not on
the default search path.
"""

import os
import tempfile

import sqlitebind


def main():
    db_path = os.path.join(tempfile.gettempdir(), "sqlitebind_todos.db")

    db = sqlitebind.connect(db_path)
    db.enable_wal_mode()

    # create a todos table if it doesn't exist (id, text, done)
    db.execute("CREATE TABLE IF NOT EXISTS todos (id INTEGER PRIMARY KEY, text TEXT, done BOOLEAN)")
    db.execute("INSERT INTO todos (text, done) VALUES ('Learn Python', false)")

    # Reuse one prepared statement for several inserts.
    with db.prepare("INSERT INTO todos (text, done) VALUES (?, ?)") as insert:
        insert.execute("Learn SQLite3", False)
        insert.execute("Learn ctypes", True)

    # Many rows, one transaction.
    inserted = db.bulk_insert(
        "INSERT INTO todos (text, done) VALUES (?, ?)",
        [(f"chore {i}", False) for i in range(1000)],
    )
    print(f"bulk inserted {inserted} rows")

    with db.query("SELECT id, text, done FROM todos ORDER BY id LIMIT 5") as stmt:
        while stmt.step():
            todo_id = stmt.column_int(0)
            text = stmt.column_text(1)
            done = stmt.column_bool(2)
            print(f"id: {todo_id}, text: {text}, done: {done}")

    db.close()

    # Clean up.
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


if __name__ == "__main__":
    main()
