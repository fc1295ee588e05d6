"""
Report Lifecycle Manager

Sole writer of reports and status_history.

Creation runs duplicate detection and priority scoring, inserts the report
with its initial history entry, and refreshes the cached cluster counts of
every neighbour, all in one transaction.

Status changes form a graph, not a pipeline: any status may follow any
other (including a repeat of the current one), and every call appends
exactly one history entry.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Union
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.db_models import (
    ReportDB, StatusHistoryDB, ReportStatus, IssueType, SYSTEM_ACTOR,
)
from .errors import ValidationError, NotFoundError, StorageError
from .geo import DuplicateDetector
from .priority import PriorityScorer
from .confirmation import ReputationLedger

logger = logging.getLogger(__name__)


class ReportLifecycleService:
    """
    Owns report creation, status transitions and the status ledger.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.detector = DuplicateDetector(db_session)
        self.scorer = PriorityScorer()
        self.reputation = ReputationLedger(db_session, scorer=self.scorer)

    # =========================================================================
    # CREATION
    # =========================================================================

    def create_report(
        self,
        issue_type: Union[IssueType, str],
        description: str,
        image_url: str,
        latitude: float,
        longitude: float,
        user_id: Optional[str] = None,
        custom_issue_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReportDB:
        """
        Create a report with computed duplicate count, crowd-verification and priority.

        Args:
            issue_type: One of the IssueType categories
            description: What the citizen observed
            image_url: Opaque reference returned by image storage
            latitude: Decimal degrees, [-90, 90]
            longitude: Decimal degrees, [-180, 180]
            user_id: Owner identity; None for anonymous reports
            custom_issue_type: Required free text when issue_type is Other

        Raises:
            ValidationError: missing or malformed input
            StorageError: transaction rolled back
        """
        stored_issue_type = self._resolve_issue_type(issue_type, custom_issue_type)
        description = self._require_text(description, "description")
        image_url = self._require_text(image_url, "image_url")
        latitude = self._require_coordinate(latitude, "latitude", 90.0)
        longitude = self._require_coordinate(longitude, "longitude", 180.0)
        if user_id is not None and not str(user_id).strip():
            user_id = None

        now = now or datetime.utcnow()

        try:
            nearby = self.detector.find_nearby(latitude, longitude)
            score = self.scorer.score(len(nearby), 0)

            report = ReportDB(
                id=str(uuid4()),
                user_id=user_id,
                issue_type=stored_issue_type,
                description=description,
                image_url=image_url,
                latitude=latitude,
                longitude=longitude,
                status=ReportStatus.PENDING,
                priority=score.priority,
                crowd_verified=score.crowd_verified,
                nearby_reports_count=len(nearby),
                confirmation_count=0,
                ai_verified=False,
                verification_credited=False,
                escalated=False,
                created_at=now,
            )
            self.db.add(report)
            self.db.add(StatusHistoryDB(
                id=str(uuid4()),
                report_id=report.id,
                sequence=1,
                old_status=None,
                new_status=ReportStatus.PENDING,
                changed_at=now,
                changed_by=user_id or SYSTEM_ACTOR,
            ))
            self.db.flush()

            for neighbour in nearby:
                self._refresh_cluster(neighbour.report, now)

            self.reputation.credit_verified_report(report, now)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Report creation at ({latitude}, {longitude}) rolled back: {e}")
            raise StorageError("Could not create report") from e

        logger.info(
            f"Report {report.id} created: nearby={report.nearby_reports_count}, "
            f"priority={report.priority.value}, crowd_verified={report.crowd_verified}"
        )
        return report

    def _refresh_cluster(self, report: ReportDB, now: datetime) -> None:
        """Recompute a neighbour's cached cluster values after a new report lands."""
        count = self.detector.count_nearby(report.latitude, report.longitude, exclude_id=report.id)
        score = self.scorer.score(count, report.confirmation_count)
        report.nearby_reports_count = count
        report.crowd_verified = score.crowd_verified
        report.priority = score.priority
        self.reputation.credit_verified_report(report, now)

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    def update_status(
        self,
        report_id: str,
        new_status: Union[ReportStatus, str],
        actor: str,
        now: Optional[datetime] = None,
    ) -> ReportDB:
        """
        Move a report to new_status and append the transition to its history.

        A transition to the current status is still recorded. Priority and
        counts are untouched.
        """
        new_status = self._coerce_status(new_status)
        actor = self._require_text(actor, "actor")
        report = self.get_report(report_id)
        now = now or datetime.utcnow()

        try:
            old_status = report.status
            last = self._last_entry(report.id)
            # Keep changed_at non-decreasing along the ledger
            changed_at = max(now, last.changed_at) if last is not None else now

            report.status = new_status
            self.db.add(StatusHistoryDB(
                id=str(uuid4()),
                report_id=report.id,
                sequence=(last.sequence if last is not None else 0) + 1,
                old_status=old_status,
                new_status=new_status,
                changed_at=changed_at,
                changed_by=actor,
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Status update of report {report_id} rolled back: {e}")
            raise StorageError(f"Could not update status of report {report_id}") from e

        logger.info(f"Report {report_id} status {old_status.value} -> {new_status.value} by {actor}")
        return report

    def get_history(self, report_id: str) -> List[StatusHistoryDB]:
        """Status ledger of a report, newest first."""
        self.get_report(report_id)
        return self.db.query(StatusHistoryDB).filter(
            StatusHistoryDB.report_id == report_id,
        ).order_by(
            StatusHistoryDB.changed_at.desc(),
            StatusHistoryDB.sequence.desc(),
        ).all()

    def _last_entry(self, report_id: str) -> Optional[StatusHistoryDB]:
        last_sequence = self.db.query(func.max(StatusHistoryDB.sequence)).filter(
            StatusHistoryDB.report_id == report_id,
        ).scalar()
        if last_sequence is None:
            return None
        return self.db.query(StatusHistoryDB).filter(
            StatusHistoryDB.report_id == report_id,
            StatusHistoryDB.sequence == last_sequence,
        ).first()

    # =========================================================================
    # EXTERNAL VERIFICATION
    # =========================================================================

    def mark_ai_verified(self, report_id: str, now: Optional[datetime] = None) -> ReportDB:
        """Record the external classifier's verification. Idempotent."""
        report = self.get_report(report_id)
        if report.ai_verified:
            return report

        now = now or datetime.utcnow()
        try:
            report.ai_verified = True
            self.db.flush()
            self.reputation.credit_verified_report(report, now)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"AI verification of report {report_id} rolled back: {e}")
            raise StorageError(f"Could not mark report {report_id} as AI-verified") from e

        logger.info(f"Report {report_id} marked AI-verified")
        return report

    # =========================================================================
    # LOOKUP & VALIDATION
    # =========================================================================

    def get_report(self, report_id: str) -> ReportDB:
        report = self.db.query(ReportDB).filter(ReportDB.id == report_id).first()
        if report is None:
            raise NotFoundError(report_id)
        return report

    @staticmethod
    def _resolve_issue_type(issue_type, custom_issue_type: Optional[str]) -> str:
        if issue_type is None or (isinstance(issue_type, str) and not issue_type.strip()):
            raise ValidationError("issue type is required", field="issue_type")
        try:
            category = IssueType(issue_type)
        except ValueError:
            raise ValidationError(f"unknown issue type: {issue_type}", field="issue_type")

        if category == IssueType.OTHER:
            if custom_issue_type is None or not custom_issue_type.strip():
                raise ValidationError("custom issue type is required for Other", field="custom_issue_type")
            return custom_issue_type.strip()
        return category.value

    @staticmethod
    def _require_text(value: Optional[str], field: str) -> str:
        if value is None or not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} is required", field=field)
        return value.strip()

    @staticmethod
    def _require_coordinate(value, field: str, bound: float) -> float:
        if value is None or isinstance(value, bool):
            raise ValidationError(f"{field} is required", field=field)
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a number", field=field)
        if math.isnan(value) or value < -bound or value > bound:
            raise ValidationError(f"{field} must be within [-{bound:g}, {bound:g}]", field=field)
        return value

    @staticmethod
    def _coerce_status(status) -> ReportStatus:
        try:
            return ReportStatus(status)
        except ValueError:
            raise ValidationError(f"unknown status: {status}", field="status")
