"""
Database connection management for SQLite.
Provides connection handling, schema initialization, and context managers.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import structlog

from application_tracker.config.settings import settings, PACKAGE_ROOT

logger = structlog.get_logger()

# Path to schema file
SCHEMA_PATH = PACKAGE_ROOT / "database" / "schema.sql"


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """
    Create a new database connection.

    Args:
        db_path: Optional path to database file. Uses settings default if not provided.

    Returns:
        SQLite connection with row factory enabled.
    """
    path = Path(db_path or settings.database_path)

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row

    # Enable WAL mode for better concurrent access
    conn.execute("PRAGMA journal_mode = WAL")

    return conn


@contextmanager
def get_db_connection(db_path: Optional[Path] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    Automatically commits on success, rolls back on error.

    Usage:
        with get_db_connection() as conn:
            conn.execute("INSERT INTO ...")
    """
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.error("Database error, rolling back", error=str(e))
        raise
    finally:
        conn.close()


def init_database(db_path: Optional[Path] = None) -> None:
    """
    Initialize the database with the schema.
    Safe to call multiple times (uses IF NOT EXISTS).

    Args:
        db_path: Optional path to database file.
    """
    path = db_path or settings.database_path
    logger.info("Initializing database", path=str(path))

    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    schema_sql = SCHEMA_PATH.read_text()

    with get_db_connection(path) as conn:
        conn.executescript(schema_sql)

    logger.info("Database initialized successfully", path=str(path))


def reset_database(db_path: Optional[Path] = None) -> None:
    """
    Drop the applications table and recreate the schema.
    WARNING: This deletes every stored application!

    Args:
        db_path: Optional path to database file.
    """
    path = db_path or settings.database_path
    logger.warning("Resetting database - all applications will be lost!", path=str(path))

    with get_db_connection(path) as conn:
        conn.execute("DROP INDEX IF EXISTS idx_applications_owner_created")
        conn.execute("DROP TABLE IF EXISTS applications")

    init_database(path)
    logger.info("Database reset complete", path=str(path))


def check_database_health(db_path: Optional[Path] = None) -> dict:
    """
    Report on the database file: tables, stored applications and size.

    Returns:
        Dictionary with ``exists`` and, for an existing file, ``tables``
        (row count per table), ``owners``, ``journal_mode`` and size. An
        ``error`` key is set when the file cannot be read.
    """
    path = Path(db_path or settings.database_path)

    if not path.exists():
        return {"exists": False, "error": "Database file does not exist"}

    report = {"exists": True, "path": str(path), "tables": {}, "owners": 0}

    try:
        with get_db_connection(path) as conn:
            tables = [
                row["name"]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
                )
            ]
            for table in tables:
                report["tables"][table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

            if "applications" in tables:
                report["owners"] = conn.execute(
                    "SELECT COUNT(DISTINCT owner_id) FROM applications"
                ).fetchone()[0]

            report["journal_mode"] = conn.execute("PRAGMA journal_mode").fetchone()[0]
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]
            report["size_bytes"] = page_count * page_size
            report["size_mb"] = round(report["size_bytes"] / (1024 * 1024), 2)

    except sqlite3.Error as e:
        report["error"] = str(e)

    return report
