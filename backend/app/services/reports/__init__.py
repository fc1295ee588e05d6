"""
Report Aggregation & Prioritization Engine

- DuplicateDetector: reports within the duplicate radius
- PriorityScorer: signal -> priority tier
- ReportLifecycleService: creation, status transitions, status ledger
- EscalationSweeper: flags stale Pending reports
- ReputationLedger: confirmations and user reputation
- ReportQueryService: ordered read views and dashboard metrics
"""

from .errors import ReportEngineError, ValidationError, NotFoundError, StorageError
from .geo import DuplicateDetector, NearbyReport, haversine
from .priority import PriorityScorer, PriorityScore, score_priority, total_signal
from .confirmation import ReputationLedger, ConfirmationResult, ConfirmationRejection
from .lifecycle import ReportLifecycleService
from .escalation import EscalationSweeper
from .queries import ReportQueryService, DashboardMetrics

__all__ = [
    'ReportEngineError',
    'ValidationError',
    'NotFoundError',
    'StorageError',
    'DuplicateDetector',
    'NearbyReport',
    'haversine',
    'PriorityScorer',
    'PriorityScore',
    'score_priority',
    'total_signal',
    'ReputationLedger',
    'ConfirmationResult',
    'ConfirmationRejection',
    'ReportLifecycleService',
    'EscalationSweeper',
    'ReportQueryService',
    'DashboardMetrics',
]
