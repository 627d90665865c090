"""Database configuration and session management."""

import logging
import os
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# Base class for all models
Base = declarative_base()

# Database configuration
DATABASE_DIR = Path(__file__).parent.parent.parent / "data"
DATABASE_PATH = DATABASE_DIR / "companion.db"
DATABASE_URL = f"sqlite:///{DATABASE_PATH}"
SQLITE_BUSY_TIMEOUT_SECONDS = 30

engine = create_engine(
    DATABASE_URL,
    connect_args={
        "check_same_thread": False,  # Needed for SQLite
        "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
    },
    echo=False,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """
    Get a database session.

    Usage in FastAPI endpoints:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
            pass

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """
    Initialize the database.

    Creates all tables if they don't exist.
    Should be called on application startup.

    Args:
        bind: Engine to initialize (defaults to the file-backed engine)
    """
    logger = logging.getLogger(__name__)
    target = bind or engine

    if bind is None:
        DATABASE_DIR.mkdir(parents=True, exist_ok=True)

    # Import all models so they're registered with Base
    from companion_engine.models import companion  # noqa: F401

    Base.metadata.create_all(bind=target)

    if bind is None:
        with target.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))
            conn.commit()
        logger.info(
            "Database config: path=%s pid=%s timeout=%ss",
            DATABASE_PATH,
            os.getpid(),
            SQLITE_BUSY_TIMEOUT_SECONDS,
        )
    logger.info(f"Database initialized at: {target.url}")
