"""End-to-end SQLite example.

This example exports a small SQLite database to a gzip dump, imports it
into a second database, and shows an interrupted import being resumed
from its checkpoint.

Prerequisites:
- None (SQLite files are created in a temporary directory)
"""

import tempfile
from pathlib import Path

from sqlshuttle import ExportRunner, ImportRunner, TransferConfig, create_connector
from sqlshuttle.core import CheckpointStore
from sqlshuttle.exceptions import StatementExecutionError

WORKDIR = Path(tempfile.mkdtemp(prefix="sqlshuttle_example_"))
SOURCE_URL = f"sqlite:///{WORKDIR / 'shop.db'}"
TARGET_URL = f"sqlite:///{WORKDIR / 'restore.db'}"


def setup_test_data():
    """Create source tables with sample data."""
    print("Setting up test data...")

    with create_connector(SOURCE_URL) as conn:
        conn.execute("""
            CREATE TABLE orders (
                order_id INTEGER PRIMARY KEY,
                customer_name TEXT,
                amount REAL,
                status TEXT
            )
        """)
        conn.execute("""
            INSERT INTO orders (order_id, customer_name, amount, status)
            VALUES
                (1, 'Alice', 99.95, 'completed'),
                (2, 'Bob; Jr.', 149.50, 'completed'),
                (3, 'O''Connor', 75.00, 'pending'),
                (4, 'Diana', 299.99, 'completed'),
                (5, 'Eve', 50.25, 'cancelled')
        """)
        conn.execute("CREATE TABLE cache_sessions (id INTEGER, payload BLOB)")
        conn.execute("CREATE VIEW completed_orders AS SELECT * FROM orders WHERE status = 'completed'")
        conn.commit()

    print("  ✓ Test data created")


def example_export():
    """Example 1: Export to a gzip dump, skipping cache tables."""
    print("\n" + "=" * 60)
    print("Example 1: Chunked Export")
    print("=" * 60)

    output = WORKDIR / "shop.sql.gz"
    config = TransferConfig(chunk_size=2, gzip=True, exclude_patterns="cache_%")

    with create_connector(SOURCE_URL) as connector:
        result = ExportRunner(connector, config, WORKDIR / "export.checkpoint.json").run(output)

    print(f"\nOutput: {result.output}")
    print(f"Success: {result.success}")
    for table in result.tables:
        print(f"  {table.table}: {table.rows_exported} rows in {table.insert_statements} INSERTs")

    return output


def example_import(dump: Path):
    """Example 2: Import the dump into a fresh database."""
    print("\n" + "=" * 60)
    print("Example 2: Batched Import")
    print("=" * 60)

    with create_connector(TARGET_URL) as connector:
        result = ImportRunner(connector, TransferConfig(batch_size=3), WORKDIR / "import.checkpoint.json").run(dump)
        rows = connector.query("SELECT COUNT(*) AS n FROM orders")[0]["n"]

    print(f"\nStatements executed: {result.statements_executed}")
    print(f"Batches committed: {result.stats.batches_committed}")
    print(f"Orders restored: {rows}")

    return result


def example_resume():
    """Example 3: Stop on a failing statement, fix the cause, resume."""
    print("\n" + "=" * 60)
    print("Example 3: Resume After Failure")
    print("=" * 60)

    dump = WORKDIR / "broken.sql"
    dump.write_text(
        "CREATE TABLE audit (id INTEGER);\n"
        "INSERT INTO audit VALUES (1);\n"
        "INSERT INTO audit_archive VALUES (1);\n"
        "INSERT INTO audit VALUES (2);\n"
    )
    checkpoint = WORKDIR / "resume.checkpoint.json"
    config = TransferConfig(batch_size=1, stop_on_error=True)

    with create_connector(TARGET_URL) as connector:
        try:
            ImportRunner(connector, config, checkpoint).run(dump)
        except StatementExecutionError as e:
            state = CheckpointStore(checkpoint).load()
            print(f"\nStopped: {e}")
            print(f"Checkpoint at offset {state.position} ({state.statements_executed} statements)")

        connector.execute("CREATE TABLE audit_archive (id INTEGER)")
        connector.commit()

        result = ImportRunner(connector, config, checkpoint).run(resume=True)

    print(f"Resumed from offset {result.resumed_from}")
    print(f"Success: {result.success}")

    return result


def main():
    """Run all examples."""
    print("\n" + "=" * 60)
    print("sqlshuttle SQLite Examples")
    print("=" * 60)

    setup_test_data()
    dump = example_export()
    example_import(dump)
    example_resume()

    print("\n" + "=" * 60)
    print(f"All examples completed! Files are in {WORKDIR}")
    print("=" * 60)


if __name__ == "__main__":
    main()
