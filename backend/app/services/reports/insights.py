"""
Derived display facts.

Pure functions over stored fields. Nothing here is persisted; badges and
hints are recomputed from counters on every read so they cannot drift from
the counters they summarize.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from ...config import CONTRIBUTOR_VERIFIED_THRESHOLD, ESCALATION_THRESHOLD_DAYS
from ...models.db_models import ReportDB, UserStatsDB, Priority, IssueType, ReportStatus
from .priority import total_signal

CONTRIBUTOR_BADGE = "Road Safety Contributor"


def is_contributor(stats: Optional[UserStatsDB]) -> bool:
    """Contributor status activates once verified_reports_count reaches the threshold."""
    if stats is None:
        return False
    return stats.verified_reports_count >= CONTRIBUTOR_VERIFIED_THRESHOLD


def display_badges(stats: Optional[UserStatsDB]) -> List[str]:
    """Stored badges plus those derived from counters."""
    if stats is None:
        return []
    badges = list(stats.badges or [])
    if is_contributor(stats) and CONTRIBUTOR_BADGE not in badges:
        badges.append(CONTRIBUTOR_BADGE)
    return badges


def priority_reason(report: ReportDB) -> str:
    """Explains a report's tier in terms of its signal."""
    reports_at_location = report.nearby_reports_count + 1
    confirmations = report.confirmation_count
    signal = total_signal(report.nearby_reports_count, confirmations)

    if report.priority == Priority.HIGH:
        return (
            f"High activity: {reports_at_location} nearby reports, "
            f"{confirmations} confirmations ({signal} total signals)"
        )
    if report.priority == Priority.MEDIUM:
        return (
            f"Moderate activity: {reports_at_location} nearby reports, "
            f"{confirmations} confirmations ({signal} total signals)"
        )
    return f"Low activity: {reports_at_location} nearby report(s), {confirmations} confirmation(s)"


def report_insight(report: ReportDB) -> str:
    """Single most relevant hint for staff and citizens."""
    if report.confirmation_count >= 5:
        return "High-risk area due to multiple reports"
    if report.confirmation_count >= 3:
        return "Recurring issue pattern detected"

    if report.issue_type == IssueType.POTHOLE.value and report.priority == Priority.HIGH:
        return "Critical road safety hazard"
    if report.issue_type == IssueType.DRAINAGE.value:
        return "Likely water drainage issue"
    if report.issue_type == IssueType.STREETLIGHT.value:
        return "Public safety concern - immediate attention needed"
    if report.issue_type == IssueType.ROAD_DAMAGE.value:
        return "Infrastructure maintenance required"

    if report.escalated:
        return "Escalated to higher authorities"
    if report.ai_verified and report.priority == Priority.HIGH:
        return "AI-verified critical issue"
    return "Standard maintenance request"


def is_overdue(
    report: ReportDB,
    now: Optional[datetime] = None,
    threshold_days: int = ESCALATION_THRESHOLD_DAYS,
) -> bool:
    """Unresolved and old enough to hit the escalation threshold."""
    if report.status == ReportStatus.RESOLVED:
        return False
    now = now or datetime.utcnow()
    return now - report.created_at >= timedelta(days=threshold_days)
