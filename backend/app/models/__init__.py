"""Road Report Engine - Data Models"""
from .db_models import (
    # Enums
    ReportStatus, Priority, IssueType, SYSTEM_ACTOR,
    # Tables
    ReportDB, StatusHistoryDB, ReportConfirmationDB, UserStatsDB,
)

__all__ = [
    "ReportStatus", "Priority", "IssueType", "SYSTEM_ACTOR",
    "ReportDB", "StatusHistoryDB", "ReportConfirmationDB", "UserStatsDB",
]
