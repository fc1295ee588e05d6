"""
Confirmation & Reputation Ledger

Sole writer of report_confirmations and of user_stats counters.

Rules:
- One confirmation per (report, user), enforced by a unique constraint so
  that two concurrent attempts cannot both land.
- A user never confirms their own report.
- Disallowed confirmations are soft rejections: accepted=False, nothing written.
- Accepted confirmations bump the report's confirmation_count, recompute its
  priority and award the confirming user CONFIRMATION_REWARD_POINTS, all in
  one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import CONFIRMATION_REWARD_POINTS
from ...models.db_models import ReportDB, ReportConfirmationDB, UserStatsDB
from .errors import ValidationError, StorageError
from .priority import PriorityScorer

logger = logging.getLogger(__name__)


class ConfirmationRejection(str, Enum):
    """Why a confirmation was not recorded."""
    REPORT_NOT_FOUND = "REPORT_NOT_FOUND"
    OWN_REPORT = "OWN_REPORT"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"


REJECTION_MESSAGES = {
    ConfirmationRejection.REPORT_NOT_FOUND: "This report no longer exists.",
    ConfirmationRejection.OWN_REPORT: "You cannot confirm your own report.",
    ConfirmationRejection.ALREADY_CONFIRMED: "You have already confirmed this report.",
}


@dataclass
class ConfirmationResult:
    accepted: bool
    reason: Optional[ConfirmationRejection] = None
    points_awarded: int = 0

    @property
    def message(self) -> Optional[str]:
        if self.reason is None:
            return None
        return REJECTION_MESSAGES[self.reason]


class ReputationLedger:
    """
    Records community confirmations and maintains per-user reputation.
    """

    def __init__(self, db_session: Session, scorer: Optional[PriorityScorer] = None):
        """Initialize with database session."""
        self.db = db_session
        self.scorer = scorer or PriorityScorer()

    # =========================================================================
    # CONFIRMATIONS
    # =========================================================================

    def confirm_report(
        self,
        report_id: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> ConfirmationResult:
        """
        Record user_id's confirmation of report_id.

        Returns accepted=False with a reason when the report is missing, owned
        by the user, or already confirmed by them. Raises StorageError if the
        transaction fails.
        """
        if not user_id or not str(user_id).strip():
            raise ValidationError("user id is required", field="user_id")

        now = now or datetime.utcnow()

        report = self.db.query(ReportDB).filter(ReportDB.id == report_id).first()
        if report is None:
            return self._reject(report_id, user_id, ConfirmationRejection.REPORT_NOT_FOUND)
        if report.user_id is not None and report.user_id == user_id:
            return self._reject(report_id, user_id, ConfirmationRejection.OWN_REPORT)
        if self.has_confirmed(report_id, user_id):
            return self._reject(report_id, user_id, ConfirmationRejection.ALREADY_CONFIRMED)

        try:
            try:
                self.db.add(ReportConfirmationDB(
                    id=str(uuid4()),
                    report_id=report_id,
                    user_id=user_id,
                    confirmed_at=now,
                ))
                self.db.flush()
            except IntegrityError:
                # Lost the race against a concurrent confirmation by the same user
                self.db.rollback()
                return self._reject(report_id, user_id, ConfirmationRejection.ALREADY_CONFIRMED)

            # Increment in SQL so concurrent confirmations by different users all count
            self.db.query(ReportDB).filter(ReportDB.id == report_id).update(
                {ReportDB.confirmation_count: ReportDB.confirmation_count + 1},
                synchronize_session=False,
            )
            self.db.refresh(report)

            score = self.scorer.score(report.nearby_reports_count, report.confirmation_count)
            report.priority = score.priority

            self._ensure_stats(user_id, now)
            self.db.query(UserStatsDB).filter(UserStatsDB.user_id == user_id).update(
                {
                    UserStatsDB.points: UserStatsDB.points + CONFIRMATION_REWARD_POINTS,
                    UserStatsDB.confirmations_given: UserStatsDB.confirmations_given + 1,
                    UserStatsDB.updated_at: now,
                },
                synchronize_session=False,
            )

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Confirmation of report {report_id} by {user_id} rolled back: {e}")
            raise StorageError(f"Could not record confirmation for report {report_id}") from e

        logger.info(
            f"Report {report_id} confirmed by {user_id}: "
            f"{report.confirmation_count} confirmations, priority={report.priority.value}"
        )
        return ConfirmationResult(accepted=True, points_awarded=CONFIRMATION_REWARD_POINTS)

    def has_confirmed(self, report_id: str, user_id: str) -> bool:
        return self.db.query(ReportConfirmationDB).filter(
            ReportConfirmationDB.report_id == report_id,
            ReportConfirmationDB.user_id == user_id,
        ).first() is not None

    def confirmed_report_ids(self, user_id: str) -> List[str]:
        """Ids of the reports user_id has confirmed, newest confirmation first."""
        rows = self.db.query(ReportConfirmationDB.report_id).filter(
            ReportConfirmationDB.user_id == user_id,
        ).order_by(ReportConfirmationDB.confirmed_at.desc()).all()
        return [row.report_id for row in rows]

    def _reject(self, report_id: str, user_id: str, reason: ConfirmationRejection) -> ConfirmationResult:
        logger.warning(f"Confirmation of report {report_id} by {user_id} rejected: {reason.value}")
        return ConfirmationResult(accepted=False, reason=reason)

    # =========================================================================
    # REPUTATION
    # =========================================================================

    def get_user_stats(self, user_id: str) -> Optional[UserStatsDB]:
        """UserStats for user_id, or None if the user has no recorded activity."""
        return self.db.query(UserStatsDB).filter(UserStatsDB.user_id == user_id).first()

    def credit_verified_report(self, report: ReportDB, now: Optional[datetime] = None) -> bool:
        """
        Count a newly verified report toward its owner's verified_reports_count.

        Runs inside the caller's transaction; does not commit. Each report is
        credited at most once. Returns True if the owner was credited.
        """
        if report.user_id is None or report.verification_credited:
            return False
        if not (report.crowd_verified or report.ai_verified):
            return False

        now = now or datetime.utcnow()
        self._ensure_stats(report.user_id, now)
        self.db.query(UserStatsDB).filter(UserStatsDB.user_id == report.user_id).update(
            {
                UserStatsDB.verified_reports_count: UserStatsDB.verified_reports_count + 1,
                UserStatsDB.updated_at: now,
            },
            synchronize_session=False,
        )
        report.verification_credited = True
        return True

    def _ensure_stats(self, user_id: str, now: datetime) -> None:
        """Create the zeroed UserStats row on a user's first activity."""
        if self.get_user_stats(user_id) is not None:
            return
        try:
            with self.db.begin_nested():
                self.db.add(UserStatsDB(
                    user_id=user_id,
                    points=0,
                    verified_reports_count=0,
                    confirmations_given=0,
                    badges=[],
                    created_at=now,
                    updated_at=now,
                ))
        except IntegrityError:
            # Created concurrently by another transaction; the row exists now
            pass
