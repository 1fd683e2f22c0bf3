"""
Error taxonomy and tracking for the sync module.

Remote failures are split into the recoverable kind (a document the store no
longer knows about) and the fatal kind (anything else the transport or the
server reports). The ErrorTracker collects failures across sync cycles so the
periodic runner can report a failed cycle without crashing the process.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any


class ErrorSeverity(Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {ErrorSeverity.WARNING: 1, ErrorSeverity.ERROR: 2, ErrorSeverity.CRITICAL: 3}


class SyncException(Exception):
    """Base class for all kbsync errors."""
    def __init__(self, message: str, source_id: Optional[str] = None, recovery_suggestion: Optional[str] = None):
        self.message = message
        self.source_id = source_id
        self.recovery_suggestion = recovery_suggestion
        super().__init__(self.message)


class ConfigurationError(SyncException):
    """Missing client credentials or an invalid sync configuration file."""


class EmptyContentError(SyncException):
    """The artifact has no meaningful content. Skipped, never escalated."""


class MissingRequiredIdentifierError(SyncException):
    """An operation that needs a remote document id was called without one."""


class RemoteError(SyncException):
    """Base class for failures reported by the remote document store."""
    def __init__(self, message: str, source_id: Optional[str] = None, recovery_suggestion: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, source_id=source_id, recovery_suggestion=recovery_suggestion)
        self.status_code = status_code


class RemoteNotFoundError(RemoteError):
    """The remote store has no document with the given id (HTTP 404)."""


class RemoteUnavailableError(RemoteError):
    """Any other transport or server failure."""


class CycleFailedError(SyncException):
    """One or more jobs of a sync cycle failed."""
    def __init__(self, message: str, failed_jobs: Optional[List[str]] = None):
        super().__init__(message, recovery_suggestion="See the job errors logged for this cycle")
        self.failed_jobs = failed_jobs or []


@dataclass
class SyncError:
    """One recorded failure."""
    message: str
    source_id: Optional[str] = None
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = field(default_factory=dict)
    recovery_suggestion: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "source_id": self.source_id,
            "severity": self.severity.value,
            "details": self.details,
            "recovery_suggestion": self.recovery_suggestion,
            "occurred_at": self.occurred_at.isoformat(),
        }


class ErrorTracker:
    def __init__(self):
        self.errors: List[SyncError] = []

    def report(self, message: str, source_id: Optional[str] = None, severity: ErrorSeverity = ErrorSeverity.ERROR,
               details: Optional[Dict[str, Any]] = None, recovery_suggestion: Optional[str] = None) -> SyncError:
        error = SyncError(message, source_id, severity, details or {}, recovery_suggestion)
        self.errors.append(error)
        return error

    def report_exception(self, exc: BaseException, source_id: Optional[str] = None,
                         severity: ErrorSeverity = ErrorSeverity.ERROR) -> SyncError:
        """
        Record an exception. A SyncException keeps its own source id and
        recovery suggestion; ``source_id`` is used when it has none.
        """
        details = {"type": type(exc).__name__}
        if isinstance(exc, SyncException):
            return self.report(exc.message, exc.source_id or source_id, severity, details, exc.recovery_suggestion)
        return self.report(str(exc), source_id, severity, details)

    def get_errors(self, min_severity: ErrorSeverity = ErrorSeverity.WARNING) -> List[SyncError]:
        """Errors at or above ``min_severity``, oldest first."""
        return [e for e in self.errors if e.severity.rank >= min_severity.rank]

    def has_critical_errors(self) -> bool:
        return any(e.severity == ErrorSeverity.CRITICAL for e in self.errors)

    def generate_report(self) -> Dict[str, Any]:
        counts = Counter(e.severity for e in self.errors)
        return {
            "total_errors": len(self.errors),
            "critical_count": counts[ErrorSeverity.CRITICAL],
            "error_count": counts[ErrorSeverity.ERROR],
            "warning_count": counts[ErrorSeverity.WARNING],
            "errors": [e.to_dict() for e in self.errors],
        }
