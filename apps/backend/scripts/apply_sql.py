#!/usr/bin/env python3
"""
Apply the SQL migrations in apps/backend/migrations to DATABASE_URL.
Idempotent - safe to run multiple times.

Usage:
    python scripts/apply_sql.py [--database-url postgresql://...] [--dry-run]
"""
import sys
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import psycopg2
from dotenv import load_dotenv

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"


def table_row_counts(cursor) -> dict:
    """Row count for every table in the public schema."""
    cursor.execute("""
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = 'public'
        ORDER BY table_name
    """)
    counts = {}
    for (table,) in cursor.fetchall():
        cursor.execute(f'SELECT COUNT(*) FROM "{table}"')
        counts[table] = cursor.fetchone()[0]
    return counts


def url_is_unique(cursor) -> bool:
    """True when opportunities.url carries a unique constraint."""
    cursor.execute("""
        SELECT 1
        FROM pg_indexes
        WHERE schemaname = 'public'
          AND tablename = 'opportunities'
          AND indexdef ILIKE '%UNIQUE%(url)%'
    """)
    return cursor.fetchone() is not None


def main():
    parser = argparse.ArgumentParser(description="Apply SQL migrations to the opportunities database")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument("--dry-run", action="store_true", help="List the migrations without applying them")
    args = parser.parse_args()

    load_dotenv()
    from app.db_config import DBConfig

    migrations = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not migrations:
        print(f"Error: no migrations found in {MIGRATIONS_DIR}")
        sys.exit(1)

    if args.dry_run:
        for migration in migrations:
            print(f"  would apply {migration.name}")
        return

    config = DBConfig(args.database_url)
    if not config.is_db_enabled:
        print("Error: DATABASE_URL environment variable is not set (or pass --database-url)")
        sys.exit(1)

    params = config.get_connection_params()
    if params is None:
        print("Error: DATABASE_URL has no host")
        sys.exit(1)

    print(f"Connecting to: {config.masked_url}")
    try:
        conn = psycopg2.connect(**params, connect_timeout=10)
    except psycopg2.Error as e:
        print(f"✗ Connection failed: {e}")
        sys.exit(1)
    print("✓ Connected\n")

    try:
        with conn.cursor() as cursor:
            before = table_row_counts(cursor)

            for migration in migrations:
                print(f"Applying {migration.name}...")
                cursor.execute(migration.read_text())
                conn.commit()

            after = table_row_counts(cursor)
            created = sorted(set(after) - set(before))
            if created:
                print(f"✓ Created {len(created)} table(s): {', '.join(created)}")
            else:
                print("✓ Schema already up to date")

            if not url_is_unique(cursor):
                print("✗ opportunities.url has no unique index; duplicate submissions cannot be rejected")
                sys.exit(1)

            print("\nTables:")
            for table, count in sorted(after.items()):
                print(f"  {table:30} {count} row(s)")
    except psycopg2.Error as e:
        conn.rollback()
        print(f"\n✗ Migration failed: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
