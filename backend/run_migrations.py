"""Simple migration runner for SQLite using provided SQL files in migrations/"""
from pathlib import Path
import argparse
import sqlite3

BASE = Path(__file__).parent
DB_PATH = BASE / "app.db"
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))


def run(db_path: Path = DB_PATH):
    """Execute SQL migration files against a local SQLite database.

    The function applies every `migrations/*.sql` file in lexical
    order. The statements are idempotent, so re-running against an
    existing database file is safe.
    """
    print("Using database:", db_path)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for m in MIGRATIONS:
            print("Applying:", m.name)
            cur.executescript(m.read_text(encoding="utf-8"))
        conn.commit()
    finally:
        conn.close()
    print("Migrations applied.")


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--db', type=Path, default=DB_PATH, help='SQLite database file to migrate')
    args = parser.parse_args()
    run(args.db)
