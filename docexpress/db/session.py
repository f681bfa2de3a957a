"""Database session management."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from docexpress.core.config import settings

_engine_options = {"pool_pre_ping": True, "echo": False}
if settings.database_url.startswith("sqlite"):
    _engine_options["connect_args"] = {"check_same_thread": False}
else:
    _engine_options.update(pool_size=5, max_overflow=10)

# Create database engine
engine = create_engine(settings.database_url, **_engine_options)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Database session

    Usage:
        @router.get("/jobs")
        def list_jobs(db: Session = Depends(get_db)):
            return db.query(Job).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
