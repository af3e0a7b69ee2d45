"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from khata.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks KHATA_DB_PATH
            environment variable, then defaults to ~/.khata/khata.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("KHATA_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".khata"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "khata.db")

    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_database(
    database_url: Optional[str] = None, database_path: Optional[str] = None
) -> SQLAlchemyDatabase:
    """Create a database from a SQLAlchemy URL, falling back to SQLite.

    An explicit ``database_path`` wins over any URL, so the CLI ``--db-path``
    option always targets a local file. Otherwise ``database_url`` and then the
    KHATA_DATABASE_URL environment variable are used.
    """
    if database_path is not None:
        return create_sqlite_database(database_path)

    if database_url is None:
        database_url = os.environ.get("KHATA_DATABASE_URL")

    if database_url:
        return SQLAlchemyDatabase(database_url)
    return create_sqlite_database()
