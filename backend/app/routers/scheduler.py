"""
Scheduler API Routes

Internal endpoints for system-automatic tasks.
The escalation sweep runs here on an interval (external scheduler) or on
administrative demand; both use the same operation.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import verify_internal_key
from ..config import ESCALATION_THRESHOLD_DAYS
from ..database import get_db
from ..services.reports import EscalationSweeper, ReportEngineError
from .reports import to_http_error


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/escalation-sweep", response_model=dict)
async def run_escalation_sweep(
    threshold_days: int = Query(ESCALATION_THRESHOLD_DAYS, ge=0),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Escalate reports Pending for at least threshold_days.

    Idempotent: an immediate re-run escalates nothing.
    """
    sweeper = EscalationSweeper(db)
    try:
        return sweeper.run_sweep(threshold_days=threshold_days)
    except ReportEngineError as e:
        raise to_http_error(e)


# =============================================================================
# SCHEDULER STATUS ENDPOINTS (READ-ONLY)
# =============================================================================

@router.get("/escalation-candidates", response_model=dict)
async def get_escalation_candidates(
    threshold_days: int = Query(ESCALATION_THRESHOLD_DAYS, ge=0),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Reports the next sweep would escalate.
    """
    candidates = EscalationSweeper(db).find_candidates(threshold_days=threshold_days)
    return {
        "threshold_days": threshold_days,
        "count": len(candidates),
        "report_ids": [report.id for report in candidates],
    }
