"""
Query/Read Service

Read-only projections over the persisted store. Orderings use stored fields
only; nothing is recomputed at read time.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ...config import FEED_LIMIT
from ...models.db_models import ReportDB, StatusHistoryDB, ReportStatus, Priority
from .errors import ValidationError


# High sorts first
PRIORITY_RANK = case(
    (ReportDB.priority == Priority.HIGH, 0),
    (ReportDB.priority == Priority.MEDIUM, 1),
    else_=2,
)


@dataclass
class DashboardMetrics:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    high_priority: int = 0
    crowd_verified: int = 0
    escalated: int = 0
    avg_resolution_hours: float = 0.0
    resolution_sample_size: int = 0

    @property
    def resolved(self) -> int:
        return self.by_status.get(ReportStatus.RESOLVED.value, 0)


class ReportQueryService:
    """Filtered, deterministically ordered report views."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def list_queue(self, status: Optional[Union[ReportStatus, str]] = None) -> List[ReportDB]:
        """
        Staff triage queue.

        Escalated first, then High, Medium, Low, then newest first. Report id
        breaks exact ties so the order is reproducible.
        """
        query = self.db.query(ReportDB)
        if status is not None:
            try:
                status = ReportStatus(status)
            except ValueError:
                raise ValidationError(f"unknown status: {status}", field="status")
            query = query.filter(ReportDB.status == status)

        return query.order_by(
            ReportDB.escalated.desc(),
            PRIORITY_RANK,
            ReportDB.created_at.desc(),
            ReportDB.id,
        ).all()

    def list_owned(self, user_id: str) -> List[ReportDB]:
        """Reports submitted by user_id, newest first."""
        return self.db.query(ReportDB).filter(
            ReportDB.user_id == user_id,
        ).order_by(ReportDB.created_at.desc(), ReportDB.id).all()

    def list_feed(self, limit: int = FEED_LIMIT) -> List[ReportDB]:
        """Community feed: most recent reports, at most FEED_LIMIT."""
        limit = max(0, min(limit, FEED_LIMIT))
        return self.db.query(ReportDB).order_by(
            ReportDB.created_at.desc(), ReportDB.id,
        ).limit(limit).all()

    def metrics(self) -> DashboardMetrics:
        """Dashboard aggregates computed from the store on every call."""
        result = DashboardMetrics()

        status_rows = self.db.query(ReportDB.status, func.count(ReportDB.id)).group_by(ReportDB.status).all()
        result.by_status = {s.value: 0 for s in ReportStatus}
        for status, count in status_rows:
            result.by_status[status.value] = count
        result.total = sum(result.by_status.values())

        result.high_priority = self.db.query(func.count(ReportDB.id)).filter(
            ReportDB.priority == Priority.HIGH,
        ).scalar() or 0
        result.crowd_verified = self.db.query(func.count(ReportDB.id)).filter(
            ReportDB.crowd_verified.is_(True),
        ).scalar() or 0
        result.escalated = self.db.query(func.count(ReportDB.id)).filter(
            ReportDB.escalated.is_(True),
        ).scalar() or 0

        hours = self._resolution_hours()
        result.resolution_sample_size = len(hours)
        if hours:
            result.avg_resolution_hours = sum(hours) / len(hours)
        return result

    def _resolution_hours(self) -> List[float]:
        """
        Hours from first history entry to last Resolved entry, per resolved report.

        One grouped query over the ledger. Reports with fewer than two
        entries are excluded rather than counted as zero.
        """
        first_change = func.min(StatusHistoryDB.changed_at)
        last_resolved = func.max(case(
            (StatusHistoryDB.new_status == ReportStatus.RESOLVED, StatusHistoryDB.changed_at),
        ))

        rows = self.db.query(
            StatusHistoryDB.report_id,
            first_change.label("first_change"),
            last_resolved.label("last_resolved"),
        ).join(
            ReportDB, ReportDB.id == StatusHistoryDB.report_id,
        ).filter(
            ReportDB.status == ReportStatus.RESOLVED,
        ).group_by(
            StatusHistoryDB.report_id,
        ).having(
            func.count(StatusHistoryDB.id) >= 2,
        ).all()

        return [
            (row.last_resolved - row.first_change).total_seconds() / 3600
            for row in rows
            if row.last_resolved is not None
        ]
