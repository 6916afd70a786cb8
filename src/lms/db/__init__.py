"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization and default settings
- Repository functions for users, exams, submissions and admin tables
"""

from lms.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
