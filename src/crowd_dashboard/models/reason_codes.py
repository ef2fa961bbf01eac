"""
Reason Codes
============

Fixed set of machine-readable codes for dashboard error and empty states.

Each non-success snapshot carries exactly ONE code that explains why
no (or only partial) data is shown.

Rules:
    - Codes are stable identifiers, messages are for humans
    - NO_STREAM_DATA and ARTIFACT_NOT_FOUND are per-camera conditions
    - Superseded runs have no code: they are never published
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Machine-readable error and empty-state codes.

    Attributes:
        NO_STREAM_DATA: A stream has no catalog entry for the range
        NO_AGGREGATE_DATA: The time series came back empty
        PARTIAL_CAMERA_MISMATCH: Some cameras in the area lack data
        TRANSPORT_OR_PARSE_FAILURE: Network, HTTP or payload failure
        ARTIFACT_NOT_FOUND: A stream's density artifact is missing
    """

    # Per-camera conditions
    NO_STREAM_DATA = "NO_STREAM_DATA"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"

    # Empty state
    NO_AGGREGATE_DATA = "NO_AGGREGATE_DATA"

    # Run failures
    PARTIAL_CAMERA_MISMATCH = "PARTIAL_CAMERA_MISMATCH"
    TRANSPORT_OR_PARSE_FAILURE = "TRANSPORT_OR_PARSE_FAILURE"
