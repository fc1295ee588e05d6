"""
Road Report Engine - Reports API Router

Thin HTTP surface over the report engine. Business rules live in
services.reports; this module only validates shapes and maps errors.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_user_id, require_user_id, verify_internal_key
from ..database import get_db
from ..models.db_models import ReportDB, StatusHistoryDB, ReportStatus, IssueType
from ..services.reports import (
    ReportLifecycleService,
    ReputationLedger,
    ReportQueryService,
    ReportEngineError,
    ValidationError,
    NotFoundError,
    StorageError,
)
from ..services.reports.insights import priority_reason, report_insight, is_overdue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class CreateReportRequest(BaseModel):
    """Citizen report submission. image_url comes from the image upload service."""
    issue_type: IssueType = Field(..., description="Issue category")
    custom_issue_type: Optional[str] = Field(None, description="Required when issue_type is Other")
    description: str = Field(..., description="What the citizen observed")
    image_url: str = Field(..., description="Reference returned by image storage")
    latitude: float = Field(..., description="Decimal degrees")
    longitude: float = Field(..., description="Decimal degrees")


class UpdateStatusRequest(BaseModel):
    status: ReportStatus
    actor: Optional[str] = Field(None, description="Defaults to the calling user")


class ReportResponse(BaseModel):
    id: str
    user_id: Optional[str]
    issue_type: str
    description: str
    image_url: str
    latitude: float
    longitude: float
    status: str
    priority: str
    crowd_verified: bool
    nearby_reports_count: int
    confirmation_count: int
    ai_verified: bool
    escalated: bool
    escalated_at: Optional[str]
    created_at: str
    priority_reason: str
    insight: str
    overdue: bool


class StatusHistoryResponse(BaseModel):
    id: str
    report_id: str
    old_status: Optional[str]
    new_status: str
    changed_at: str
    changed_by: str


class ConfirmationResponse(BaseModel):
    accepted: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    points_awarded: int = 0


class MetricsResponse(BaseModel):
    total: int
    by_status: dict
    resolved: int
    high_priority: int
    crowd_verified: int
    escalated: int
    avg_resolution_hours: float
    resolution_sample_size: int


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def serialize_report(report: ReportDB, now: Optional[datetime] = None) -> ReportResponse:
    return ReportResponse(
        id=report.id,
        user_id=report.user_id,
        issue_type=report.issue_type,
        description=report.description,
        image_url=report.image_url,
        latitude=report.latitude,
        longitude=report.longitude,
        status=report.status.value,
        priority=report.priority.value,
        crowd_verified=report.crowd_verified,
        nearby_reports_count=report.nearby_reports_count,
        confirmation_count=report.confirmation_count,
        ai_verified=report.ai_verified,
        escalated=report.escalated,
        escalated_at=report.escalated_at.isoformat() if report.escalated_at else None,
        created_at=report.created_at.isoformat(),
        priority_reason=priority_reason(report),
        insight=report_insight(report),
        overdue=is_overdue(report, now),
    )


def serialize_history(entry: StatusHistoryDB) -> StatusHistoryResponse:
    return StatusHistoryResponse(
        id=entry.id,
        report_id=entry.report_id,
        old_status=entry.old_status.value if entry.old_status else None,
        new_status=entry.new_status.value,
        changed_at=entry.changed_at.isoformat(),
        changed_by=entry.changed_by,
    )


def to_http_error(error: ReportEngineError) -> HTTPException:
    """Map engine errors onto HTTP status codes."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StorageError):
        logger.warning(f"Storage failure surfaced to client: {error}")
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


# =============================================================================
# READ VIEWS (declared before /{report_id})
# =============================================================================

@router.get("/queue", response_model=List[ReportResponse])
async def list_queue(
    status: Optional[ReportStatus] = Query(None, description="Only reports in this status"),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Staff triage queue: escalated first, then High/Medium/Low, newest first.
    """
    reports = ReportQueryService(db).list_queue(status=status)
    now = datetime.utcnow()
    return [serialize_report(r, now) for r in reports]


@router.get("/mine", response_model=List[ReportResponse])
async def list_owned(
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    """Reports submitted by the caller, newest first."""
    reports = ReportQueryService(db).list_owned(user_id)
    now = datetime.utcnow()
    return [serialize_report(r, now) for r in reports]


@router.get("/feed", response_model=List[ReportResponse])
async def list_feed(db: Session = Depends(get_db)):
    """Community feed: the 50 most recent reports."""
    reports = ReportQueryService(db).list_feed()
    now = datetime.utcnow()
    return [serialize_report(r, now) for r in reports]


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """Dashboard aggregates."""
    metrics = ReportQueryService(db).metrics()
    return MetricsResponse(
        total=metrics.total,
        by_status=metrics.by_status,
        resolved=metrics.resolved,
        high_priority=metrics.high_priority,
        crowd_verified=metrics.crowd_verified,
        escalated=metrics.escalated,
        avg_resolution_hours=metrics.avg_resolution_hours,
        resolution_sample_size=metrics.resolution_sample_size,
    )


# =============================================================================
# REPORT OPERATIONS
# =============================================================================

@router.post("", response_model=ReportResponse)
async def create_report(
    request: CreateReportRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Submit a report. Duplicate detection and priority are computed here.
    Anonymous submissions are accepted.
    """
    service = ReportLifecycleService(db)
    try:
        report = service.create_report(
            issue_type=request.issue_type,
            custom_issue_type=request.custom_issue_type,
            description=request.description,
            image_url=request.image_url,
            latitude=request.latitude,
            longitude=request.longitude,
            user_id=user_id,
        )
    except ReportEngineError as e:
        raise to_http_error(e)
    return serialize_report(report)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, db: Session = Depends(get_db)):
    try:
        report = ReportLifecycleService(db).get_report(report_id)
    except ReportEngineError as e:
        raise to_http_error(e)
    return serialize_report(report)


@router.patch("/{report_id}/status", response_model=ReportResponse)
async def update_status(
    report_id: str,
    request: UpdateStatusRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Staff status change. Always appends a history entry.
    """
    actor = request.actor or user_id
    if not actor:
        raise HTTPException(status_code=422, detail="actor is required")

    try:
        report = ReportLifecycleService(db).update_status(report_id, request.status, actor)
    except ReportEngineError as e:
        raise to_http_error(e)
    return serialize_report(report)


@router.get("/{report_id}/history", response_model=List[StatusHistoryResponse])
async def get_history(report_id: str, db: Session = Depends(get_db)):
    """Status ledger, newest first."""
    try:
        history = ReportLifecycleService(db).get_history(report_id)
    except ReportEngineError as e:
        raise to_http_error(e)
    return [serialize_history(entry) for entry in history]


@router.post("/{report_id}/confirm", response_model=ConfirmationResponse)
async def confirm_report(
    report_id: str,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    """
    Confirm someone else's report for +5 points.

    Disallowed confirmations return 200 with accepted=false and a reason.
    """
    try:
        result = ReputationLedger(db).confirm_report(report_id, user_id)
    except ReportEngineError as e:
        raise to_http_error(e)

    return ConfirmationResponse(
        accepted=result.accepted,
        reason=result.reason.value if result.reason else None,
        message=result.message,
        points_awarded=result.points_awarded,
    )


@router.post("/{report_id}/ai-verification", response_model=ReportResponse)
async def mark_ai_verified(
    report_id: str,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """Called by the image classifier once it has verified the report."""
    try:
        report = ReportLifecycleService(db).mark_ai_verified(report_id)
    except ReportEngineError as e:
        raise to_http_error(e)
    return serialize_report(report)
