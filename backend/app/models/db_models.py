"""
Road Report Engine - SQLAlchemy ORM Models
Persistent storage for reports, their status ledger, confirmations and reputation
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, JSON, ForeignKey, Boolean,
    UniqueConstraint, Index, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS
# =============================================================================

class ReportStatus(str, Enum):
    """Lifecycle states of a report. Transitions form a graph, not a pipeline."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class Priority(str, Enum):
    """Priority tier derived from community signal."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class IssueType(str, Enum):
    """Fixed issue categories offered to citizens."""
    POTHOLE = "Pothole"
    STREETLIGHT = "Streetlight Not Working"
    DRAINAGE = "Drainage Problem"
    ROAD_DAMAGE = "Road Damage"
    OTHER = "Other"


SYSTEM_ACTOR = "system"


# =============================================================================
# REPORTS
# =============================================================================

class ReportDB(Base):
    """Citizen-submitted road issue."""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(255), nullable=True, index=True)  # Opaque identity, null for anonymous

    issue_type = Column(String(255), nullable=False)  # Category value or free text for "Other"
    description = Column(Text, nullable=False)
    image_url = Column(Text, nullable=False)  # Opaque reference from image storage
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    status = Column(SQLEnum(ReportStatus), nullable=False, default=ReportStatus.PENDING, index=True)
    priority = Column(SQLEnum(Priority), nullable=False, default=Priority.LOW)

    # Cached derived values, recomputed on creation and confirmation
    crowd_verified = Column(Boolean, nullable=False, default=False)
    nearby_reports_count = Column(Integer, nullable=False, default=0)
    confirmation_count = Column(Integer, nullable=False, default=0)

    # Set by an external image classifier
    ai_verified = Column(Boolean, nullable=False, default=False)
    # Owner's verified_reports_count already credited for this report
    verification_credited = Column(Boolean, nullable=False, default=False)

    escalated = Column(Boolean, nullable=False, default=False, index=True)
    escalated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    history = relationship(
        "StatusHistoryDB",
        back_populates="report",
        order_by="StatusHistoryDB.sequence",
    )
    confirmations = relationship("ReportConfirmationDB", back_populates="report")

    __table_args__ = (
        Index("idx_reports_location", "latitude", "longitude"),
    )


class StatusHistoryDB(Base):
    """
    Append-only status ledger.

    Entries are never updated or deleted. `sequence` is 1-based per report;
    the unique constraint rejects two writers appending the same position.
    """
    __tablename__ = "status_history"

    id = Column(String(36), primary_key=True)  # UUID
    report_id = Column(String(36), ForeignKey("reports.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    old_status = Column(SQLEnum(ReportStatus), nullable=True)  # Null only for the creation entry
    new_status = Column(SQLEnum(ReportStatus), nullable=False)
    changed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    changed_by = Column(String(255), nullable=False)

    report = relationship("ReportDB", back_populates="history")

    __table_args__ = (
        UniqueConstraint("report_id", "sequence", name="uq_status_history_report_sequence"),
    )


# =============================================================================
# CONFIRMATIONS & REPUTATION
# =============================================================================

class ReportConfirmationDB(Base):
    """One user's endorsement of one report."""
    __tablename__ = "report_confirmations"

    id = Column(String(36), primary_key=True)  # UUID
    report_id = Column(String(36), ForeignKey("reports.id"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    confirmed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    report = relationship("ReportDB", back_populates="confirmations")

    __table_args__ = (
        UniqueConstraint("report_id", "user_id", name="uq_report_confirmations_report_user"),
    )


class UserStatsDB(Base):
    """Per-user reputation record, created on first activity."""
    __tablename__ = "user_stats"

    user_id = Column(String(255), primary_key=True)
    points = Column(Integer, nullable=False, default=0)
    verified_reports_count = Column(Integer, nullable=False, default=0)
    confirmations_given = Column(Integer, nullable=False, default=0)
    badges = Column(JSON, nullable=False, default=list)  # Names of awarded badges

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
