"""
Database module for the Application Tracker.
"""

from application_tracker.database.connection import (
    get_connection,
    get_db_connection,
    init_database,
    reset_database,
    check_database_health,
)

__all__ = [
    "get_connection",
    "get_db_connection",
    "init_database",
    "reset_database",
    "check_database_health",
]
