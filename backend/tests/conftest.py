"""
Shared fixtures: an in-memory SQLite database per test.
"""
import os

# Must be set before app.database builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.db_models import ReportDB, StatusHistoryDB, ReportStatus, Priority


NOW = datetime(2024, 6, 1, 12, 0, 0)

# Two points ~15 m apart, and one ~680 m away
CONNAUGHT_PLACE = (28.6139, 77.2090)
CONNAUGHT_PLACE_NEARBY = (28.6140, 77.2091)
JANPATH = (28.6200, 77.2090)


@pytest.fixture
def engine():
    """Fresh in-memory database, shared by every session of the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN; emit it explicitly so SAVEPOINT works
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_report(db):
    """
    Insert a report row directly, bypassing the engine.

    For read-side tests that need exact field values.
    """
    def _make(
        latitude: float = 10.0,
        longitude: float = 10.0,
        status: ReportStatus = ReportStatus.PENDING,
        priority: Priority = Priority.LOW,
        created_at: datetime = NOW,
        escalated: bool = False,
        user_id: str = None,
        **fields,
    ) -> ReportDB:
        report = ReportDB(
            id=str(uuid4()),
            user_id=user_id,
            issue_type=fields.pop("issue_type", "Pothole"),
            description=fields.pop("description", "Deep pothole"),
            image_url=fields.pop("image_url", "https://img.example/p.jpg"),
            latitude=latitude,
            longitude=longitude,
            status=status,
            priority=priority,
            crowd_verified=fields.pop("crowd_verified", False),
            nearby_reports_count=fields.pop("nearby_reports_count", 0),
            confirmation_count=fields.pop("confirmation_count", 0),
            ai_verified=fields.pop("ai_verified", False),
            verification_credited=False,
            escalated=escalated,
            escalated_at=fields.pop("escalated_at", None),
            created_at=created_at,
        )
        db.add(report)
        db.add(StatusHistoryDB(
            id=str(uuid4()),
            report_id=report.id,
            sequence=1,
            old_status=None,
            new_status=ReportStatus.PENDING,
            changed_at=created_at,
            changed_by=user_id or "system",
        ))
        db.commit()
        return report

    return _make
