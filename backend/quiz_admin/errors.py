"""
Error taxonomy for the admin reporting service.

Every error carries the HTTP status it maps to and a human-readable
message. The exception handler registered in main.py renders them as
``{"success": false, "message": ..., "error": ...}``.
"""


class ReportingError(Exception):
    """Base class for all errors surfaced to admin callers."""

    status_code = 500

    def __init__(self, message: str, detail: str = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(ReportingError):
    """Malformed caller input (pagination, item payloads, export type)."""

    status_code = 400


class NotFoundError(ReportingError):
    """Referenced session, student or item does not exist or is soft-deleted."""

    status_code = 404


class StoreError(ReportingError):
    """The underlying record store failed. Never retried."""

    status_code = 500


class ExportRenderError(ReportingError):
    """Spreadsheet construction failed; the partial document is discarded."""

    status_code = 500
