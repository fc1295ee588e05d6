"""
Road Report Engine - Users API Router

Reputation read views. Points and counters are written only by the
confirmation ledger and report verification.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_user_id
from ..database import get_db
from ..services.reports import ReputationLedger
from ..services.reports.insights import is_contributor, display_badges


router = APIRouter(prefix="/users", tags=["users"])


class UserStatsResponse(BaseModel):
    user_id: str
    points: int
    verified_reports_count: int
    confirmations_given: int
    badges: List[str]
    contributor: bool
    created_at: str
    updated_at: str


class ConfirmedReportsResponse(BaseModel):
    user_id: str
    report_ids: List[str]


@router.get("/me/confirmations", response_model=ConfirmedReportsResponse)
async def get_my_confirmations(
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    """Reports the caller has already confirmed."""
    ledger = ReputationLedger(db)
    return ConfirmedReportsResponse(user_id=user_id, report_ids=ledger.confirmed_report_ids(user_id))


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def get_user_stats(user_id: str, db: Session = Depends(get_db)):
    """Reputation record; 404 until the user has any recorded activity."""
    stats = ReputationLedger(db).get_user_stats(user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No activity recorded for this user")

    return UserStatsResponse(
        user_id=stats.user_id,
        points=stats.points,
        verified_reports_count=stats.verified_reports_count,
        confirmations_given=stats.confirmations_given,
        badges=display_badges(stats),
        contributor=is_contributor(stats),
        created_at=stats.created_at.isoformat(),
        updated_at=stats.updated_at.isoformat(),
    )
