"""
Report engine error taxonomy.

Soft business rejections (self/duplicate confirmation) are not errors; they
are returned as ConfirmationResult values by the confirmation ledger.
"""


class ReportEngineError(Exception):
    """Base class for engine failures surfaced to callers."""


class ValidationError(ReportEngineError):
    """Malformed or missing input. The caller must correct and retry."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ReportEngineError):
    """Referenced report does not exist."""

    def __init__(self, report_id: str):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class StorageError(ReportEngineError):
    """
    Underlying transaction failed and was rolled back.

    Nothing was committed, so the whole operation is safe to retry.
    """
