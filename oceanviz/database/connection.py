"""
Database Connection and Session Management

This module handles database connections, session management, and schema
setup for the measurement table. A DatabaseManager is created explicitly by
each entry point and closed when that entry point finishes.
"""

import os
import sys
from contextlib import contextmanager
from typing import Generator, Optional

import logging
from dotenv import load_dotenv
from sqlalchemy import Column, create_engine, inspect, text
from sqlalchemy.engine import Dialect, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations"""
    pass


def build_database_url() -> str:
    """Build the connection string from environment variables"""
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    db_host = os.getenv('POSTGRES_HOST', 'localhost')
    db_port = os.getenv('POSTGRES_PORT', '5432')
    db_name = os.getenv('POSTGRES_DB', 'argo_data')
    db_user = os.getenv('POSTGRES_USER', 'postgres')
    db_password = os.getenv('POSTGRES_PASSWORD', '')

    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def column_definition(column: Column, dialect: Dialect) -> str:
    """
    Render a column for ALTER TABLE ... ADD COLUMN, server default included

    SQLite rejects non-constant defaults in ADD COLUMN, so expression
    defaults are left out there.
    """
    definition = f"{column.name} {column.type.compile(dialect=dialect)}"
    if column.server_default is None:
        return definition

    arg = column.server_default.arg
    if isinstance(arg, str):
        escaped = arg.replace("'", "''")
        return f"{definition} DEFAULT '{escaped}'"
    if dialect.name == 'sqlite':
        return definition
    return f"{definition} DEFAULT {arg.compile(dialect=dialect)}"


class DatabaseManager:
    """Manages database connections and operations"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or build_database_url()
        self.engine = None
        self.SessionLocal = None
        self._initialize_connection()

    def _initialize_connection(self):
        """Initialize database connection"""
        url = make_url(self.database_url)
        options = {'echo': os.getenv('SQL_ECHO', 'false').lower() == 'true'}

        if url.get_backend_name() != 'sqlite':
            options.update(
                pool_size=10,
                max_overflow=20,
                pool_recycle=3600,
                pool_pre_ping=True,
            )

        try:
            self.engine = create_engine(url, **options)
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine
            )
            logger.info(f"Database engine initialized for {url.render_as_string(hide_password=True)}")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {str(e)}")
            raise

    def ensure_schema(self):
        """Create the measurement table if absent and add any missing columns"""
        try:
            Base.metadata.create_all(bind=self.engine)

            with self.engine.begin() as conn:
                for table in Base.metadata.sorted_tables:
                    existing = {c['name'] for c in inspect(conn).get_columns(table.name)}
                    for column in table.columns:
                        if column.name in existing:
                            continue
                        definition = column_definition(column, self.engine.dialect)
                        if column.server_default is not None and ' DEFAULT ' not in definition:
                            logger.warning(
                                f"{self.engine.dialect.name} cannot add {table.name}.{column.name} "
                                f"with its server default; relying on the insert-time default"
                            )
                        conn.execute(text(f'ALTER TABLE {table.name} ADD COLUMN {definition}'))
                        logger.info(f"Added column {table.name}.{column.name}")

            logger.info("Database schema ensured")

        except SQLAlchemyError as e:
            logger.error(f"Failed to ensure database schema: {str(e)}")
            raise DatabaseError(f"Schema setup failed: {str(e)}") from e

    def get_session(self) -> Session:
        """Get a new database session"""
        if not self.SessionLocal:
            raise RuntimeError("Database connection not initialized")
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Context manager for database sessions with automatic cleanup"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Test database connection"""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(f"Database connection test failed: {str(e)}")
            return False

    def close(self):
        """Release all pooled connections"""
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database engine disposed")


def main() -> int:
    """Create the measurement table and synchronize its columns"""
    load_dotenv()

    db_manager = None
    try:
        db_manager = DatabaseManager()
        db_manager.ensure_schema()
        print("Table argo_measurements ensured and columns synchronized.")
        return 0
    except Exception as e:
        print(f"Error creating table argo_measurements: {e}", file=sys.stderr)
        return 1
    finally:
        if db_manager is not None:
            db_manager.close()


if __name__ == "__main__":
    sys.exit(main())
