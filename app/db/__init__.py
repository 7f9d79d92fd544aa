"""
Database module - MySQL connection and helpers.
"""
from app.db.mysql import get_db_session, execute_raw_sql, fetch_one, test_mysql_connection

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "fetch_one",
    "test_mysql_connection"
]
