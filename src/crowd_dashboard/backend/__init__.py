"""
Backend Module
==============

HTTP access to the density backend.

This module provides:
    - BackendClient: Async client for projects, series and density artifacts
    - BackendClientMetrics: Request and failure counters
"""

from crowd_dashboard.backend.client import BackendClient, BackendClientMetrics


__all__ = [
    "BackendClient",
    "BackendClientMetrics",
]
