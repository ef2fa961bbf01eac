"""
Alignment Module
================

Temporal alignment of camera streams.

This module provides:
    - nearest: Closest catalog instant for one stream
    - nearest_lookup: Closest instants for many streams
    - artifact_name: Density artifact name for a resolved instant
"""

from crowd_dashboard.alignment.timestamps import (
    artifact_name,
    format_artifact_timestamp,
    nearest,
    nearest_lookup,
)


__all__ = [
    "nearest",
    "nearest_lookup",
    "artifact_name",
    "format_artifact_timestamp",
]
