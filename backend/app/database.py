"""
Road Report Engine - Database Configuration

Engine and session factory for the report store (reports, status history,
confirmations, user stats). Every engine operation runs in one session and
commits or rolls back as a unit.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

engine = create_engine(DATABASE_URL, echo=False)

# Services commit explicitly; nothing is flushed behind their back
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the report engine tables if they are missing."""
    # Table classes must be imported before create_all can see them
    from .models import db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
