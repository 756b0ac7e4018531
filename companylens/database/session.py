# companylens/database/session.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.exc import SQLAlchemyError

from . import models
from companylens.config.settings import DatabaseSettings
from companylens.core.exceptions import DatabaseConnectionError, DatabaseError

logger = logging.getLogger(__name__)

# Extensions the search queries depend on: vector distance and trigram similarity
REQUIRED_EXTENSIONS = ("vector", "pg_trgm")


def create_extensions_if_not_exists(engine):
    """Creates the PostgreSQL extensions required for hybrid search."""
    try:
        with engine.begin() as connection:
            for extension in REQUIRED_EXTENSIONS:
                logger.info(f"Checking/creating extension '{extension}'...")
                connection.execute(
                    text(f"CREATE EXTENSION IF NOT EXISTS {extension}"))
        logger.info("Database extensions checked/created.")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Failed to check/create database extensions: {e}",
                     exc_info=True)
        raise DatabaseConnectionError(
            f"Failed to check/create database extensions: {e}")


def create_database_tables(engine):
    """Creates the database tables based on SQLAlchemy models."""
    logger.info("Creating database tables if they don't exist...")
    try:
        models.Base.metadata.create_all(bind=engine)
        logger.info("Database tables checked/created successfully.")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Error creating database tables: {e}", exc_info=True)
        raise DatabaseError(f"Failed to create database tables: {e}")


def initialize_database(db_settings: DatabaseSettings,
                        create_schema: bool = True):
    """
    Creates engine and session factory, and optionally the extensions and tables.

    Args:
        db_settings: An instance of DatabaseSettings containing connection details.
        create_schema: Whether to create missing extensions and tables.

    Returns:
        A tuple: (engine, session_factory) on success.

    Raises:
        DatabaseConnectionError: If connection or initial setup fails.
        DatabaseError: If table creation fails.
    """
    engine = None
    try:
        logger.info(
            f"Connecting to database '{db_settings.name}' on {db_settings.host} and creating engine..."
        )
        engine = create_engine(db_settings.url,
                               pool_recycle=3600,
                               pool_size=db_settings.pool_size,
                               max_overflow=db_settings.max_overflow,
                               pool_pre_ping=True,
                               echo=False)

        # Scoped for thread safety: ranked and count queries run on separate threads
        session_factory = scoped_session(
            sessionmaker(autocommit=False, autoflush=False, bind=engine))
        logger.info("Database engine and session factory created.")

        if create_schema:
            create_extensions_if_not_exists(engine)
            create_database_tables(engine)

        logger.info("Database initialization successful.")
        return engine, session_factory

    except SQLAlchemyError as e:
        logger.error(
            f"Failed to connect or setup session/tables for '{db_settings.name}': {e}",
            exc_info=True)
        if engine: engine.dispose()
        raise DatabaseConnectionError(
            f"Failed to establish database connection or session: {e}")
    except DatabaseError:
        if engine: engine.dispose()
        raise


@contextmanager
def get_session(session_factory):
    """Provide a transactional scope around a series of operations."""
    session = session_factory()
    logger.debug(f"DB Session {id(session)} acquired.")
    try:
        yield session
        logger.debug(f"DB Session {id(session)} committing.")
        session.commit()
    except Exception as e:
        logger.warning(
            f"DB Session {id(session)} rolling back due to: {e.__class__.__name__}"
        )
        session.rollback()
        raise
    finally:
        logger.debug(f"DB Session {id(session)} closing.")
        # Clean up the thread-local session of the scoped_session
        if hasattr(session_factory, "remove"):
            session_factory.remove()
        else:
            session.close()
