import sqlite3
import psycopg2
from psycopg2.extras import execute_batch
import sys

from setup_database import create_postgres_schema
from storage import BOOLEAN_COLUMNS

# Parents before children so foreign keys resolve.
TABLES = [
    'stocks',
    'stock_prices',
    'portfolio_holdings',
    'transactions',
    'watchlist',
    'trading_rules',
]


def clean_value(column, value):
    if value == '':
        return None
    if column in BOOLEAN_COLUMNS and value is not None:
        return bool(value)
    return value


def clean_row(columns, row):
    return tuple(clean_value(col, row[i]) for i, col in enumerate(columns))


def migrate(sqlite_db='portfolio.db', postgres_url=None):
    if not postgres_url:
        print("Error: PostgreSQL URL required")
        print("Usage: python migrate.py <postgres_url> [sqlite_db]")
        return

    print("Connecting to SQLite...")
    sqlite_conn = sqlite3.connect(sqlite_db)
    sqlite_cursor = sqlite_conn.cursor()

    if 'sslmode' not in postgres_url:
        postgres_url += '?sslmode=require'

    print("Creating schema...")
    create_postgres_schema(postgres_url)

    print("Connecting to PostgreSQL...")
    pg_conn = psycopg2.connect(postgres_url)
    pg_cursor = pg_conn.cursor()

    batch_size = 500
    for table in TABLES:
        print(f"\nMigrating {table}...")
        sqlite_cursor.execute(f"SELECT * FROM {table} ORDER BY id")
        rows = sqlite_cursor.fetchall()
        if not rows:
            print("  (empty)")
            continue

        columns = [desc[0] for desc in sqlite_cursor.description]
        cleaned = [clean_row(columns, row) for row in rows]
        insert_sql = (
            f"INSERT INTO {table} ({','.join(columns)}) "
            f"VALUES ({','.join(['%s'] * len(columns))}) ON CONFLICT DO NOTHING"
        )

        for i in range(0, len(cleaned), batch_size):
            batch = cleaned[i:i + batch_size]
            execute_batch(pg_cursor, insert_sql, batch, page_size=100)
            pg_conn.commit()
            print(f"  Progress: {min(i + batch_size, len(cleaned))}/{len(cleaned)}")

        # Explicit ids were inserted; move the identity past them.
        pg_cursor.execute(
            f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
            f"COALESCE((SELECT MAX(id) FROM {table}), 1))"
        )
        pg_conn.commit()
        print(f"Migrated {len(cleaned)} {table} rows")

    sqlite_conn.close()
    pg_conn.close()
    print("\nMigration complete!")


if __name__ == "__main__":
    postgres_url = sys.argv[1] if len(sys.argv) > 1 else None
    sqlite_db = sys.argv[2] if len(sys.argv) > 2 else 'portfolio.db'
    migrate(sqlite_db, postgres_url)
