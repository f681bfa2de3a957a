"""Database package."""

from docexpress.db.base import Base
from docexpress.db.session import SessionLocal, engine, get_db

__all__ = ["Base", "SessionLocal", "engine", "get_db"]
