"""
Dashboard Errors
================

Exception hierarchy for the dashboard core.

Backend failures are raised by the HTTP client and caught at the pipeline
boundary, where they are converted into published snapshot state. They never
propagate to the scheduler or to the HTTP layer.

Hierarchy:
    DashboardError
        BackendError                  transport / HTTP failure
            PayloadError              malformed response body
            PartialCameraMismatchError  some cameras lack data for the range
            ArtifactNotFoundError     density artifact missing (404)
        ControlsLockedError           manual controls used while live
        UnknownAreaError              area id not in the project
"""

from typing import Optional

from crowd_dashboard.models.reason_codes import ErrorCode


class DashboardError(Exception):
    """Base class for all dashboard errors."""

    code: ErrorCode = ErrorCode.TRANSPORT_OR_PARSE_FAILURE


class BackendError(DashboardError):
    """
    Raised when a backend request fails.

    Attributes:
        status_code: HTTP status of the failed response, if any
    """

    code = ErrorCode.TRANSPORT_OR_PARSE_FAILURE

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PayloadError(BackendError):
    """Raised when a backend response cannot be parsed or validated."""


class PartialCameraMismatchError(BackendError):
    """Raised when only some cameras of an area have data for the range."""

    code = ErrorCode.PARTIAL_CAMERA_MISMATCH


class ArtifactNotFoundError(BackendError):
    """Raised when a stream's density artifact does not exist."""

    code = ErrorCode.ARTIFACT_NOT_FOUND


class ControlsLockedError(DashboardError):
    """Raised when manual controls are used while live mode is on."""


class UnknownAreaError(DashboardError):
    """Raised when an area id does not belong to the loaded project."""
