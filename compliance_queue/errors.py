"""
Error taxonomy for Compliance Queue.

Lifecycle and store failures propagate to the caller as these typed
exceptions. Scrape failures are normally carried inside a ``ScrapeResult``
and only become exceptions through ``ScrapeResult.raise_for_outcome()``.
"""

from typing import Any, Dict, Optional


class ComplianceQueueError(Exception):
    """Base error with a stable code for programmatic handling.

    Attributes:
        code: Stable error code
        message: Human-readable error description
    """

    code = "COMPLIANCE_QUEUE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {"error": self.code, "message": self.message}


class ArtifactNotFound(ComplianceQueueError):
    """Raised when no compliance artifact matches the requested id."""

    code = "ARTIFACT_NOT_FOUND"

    def __init__(self, artifact_id: str):
        self.artifact_id = artifact_id
        super().__init__(f"Compliance artifact {artifact_id} not found")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["artifact_id"] = self.artifact_id
        return data


class StoreUnavailable(ComplianceQueueError):
    """Raised when the artifact store cannot complete an operation."""

    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Artifact store unavailable during {operation}{detail}")


class ScrapeError(ComplianceQueueError):
    """Base class for failed scrape attempts."""

    code = "SCRAPE_ERROR"


class ScrapeRejected(ScrapeError):
    """The scrape service answered but declined the request."""

    code = "SCRAPE_REJECTED"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ScrapeTransportError(ScrapeError):
    """The scrape service could not be reached or returned garbage."""

    code = "SCRAPE_TRANSPORT_ERROR"
