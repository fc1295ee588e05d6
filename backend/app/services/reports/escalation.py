"""
Escalation Sweeper

AUTHORITY: SYSTEM
Flags reports that have stayed Pending past the threshold.

Escalation is orthogonal to the lifecycle: it never changes status or
priority and never appends to the status ledger. The write is a single
conditional UPDATE keyed on escalated = false, so it cannot clobber a
concurrent status change on the same row and a second run is a no-op.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import ESCALATION_THRESHOLD_DAYS
from ...models.db_models import ReportDB, ReportStatus
from .errors import ValidationError, StorageError

logger = logging.getLogger(__name__)


class EscalationSweeper:
    """
    Escalates stale Pending reports.

    Called by an external scheduler on an interval, or on administrative
    demand; both paths use sweep_escalations().
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def _stale_pending(self, now: datetime, threshold_days: int):
        cutoff = now - timedelta(days=threshold_days)
        return self.db.query(ReportDB).filter(
            ReportDB.status == ReportStatus.PENDING,
            ReportDB.escalated.is_(False),
            ReportDB.created_at <= cutoff,
        )

    def find_candidates(
        self,
        now: Optional[datetime] = None,
        threshold_days: int = ESCALATION_THRESHOLD_DAYS,
    ) -> List[ReportDB]:
        """Reports the next sweep would escalate. Read-only."""
        self._check_threshold(threshold_days)
        now = now or datetime.utcnow()
        return self._stale_pending(now, threshold_days).order_by(ReportDB.created_at).all()

    def sweep_escalations(
        self,
        now: Optional[datetime] = None,
        threshold_days: int = ESCALATION_THRESHOLD_DAYS,
    ) -> int:
        """
        Escalate every Pending, unescalated report older than threshold_days.

        Returns the number of reports escalated by this call.
        """
        self._check_threshold(threshold_days)
        now = now or datetime.utcnow()

        try:
            escalated = self._stale_pending(now, threshold_days).update(
                {ReportDB.escalated: True, ReportDB.escalated_at: now},
                synchronize_session=False,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Escalation sweep rolled back: {e}")
            raise StorageError("Escalation sweep failed") from e

        logger.info(f"Escalation sweep (threshold={threshold_days}d): {escalated} reports escalated")
        return escalated

    def run_sweep(self, threshold_days: int = ESCALATION_THRESHOLD_DAYS) -> Dict[str, Any]:
        """Scheduler entry point. Sweeps at the current time and reports the run."""
        now = datetime.utcnow()
        escalated = self.sweep_escalations(now=now, threshold_days=threshold_days)
        return {
            "task": "escalation_sweep",
            "run_date": now.isoformat(),
            "threshold_days": threshold_days,
            "escalated": escalated,
        }

    @staticmethod
    def _check_threshold(threshold_days: int) -> None:
        if threshold_days is None or isinstance(threshold_days, bool) or threshold_days < 0:
            raise ValidationError("threshold_days must be a non-negative integer", field="threshold_days")
