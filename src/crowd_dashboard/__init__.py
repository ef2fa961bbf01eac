"""
Crowd Dashboard
===============

Spatio-temporal aggregation core for a multi-camera crowd density dashboard.

This package aligns per-camera density measurements in time, projects them
into a shared world coordinate system, merges them into one grid and drives
that pipeline under manual and live-refresh operation.

Components:
    - alignment: Nearest-timestamp lookup over camera catalogs
    - geometry: Crop/projection transform and grid rasterization
    - backend: HTTP client for the density backend
    - pipeline: Token-gated aggregation pipeline and live scheduler
    - dashboard: Session owning controls, area and live mode
    - observability: Series statistics and grid summaries

Example:
    from crowd_dashboard.config import settings
    from crowd_dashboard.models import DashboardSnapshot

    # The dashboard is served via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "Crowd Dashboard Project"

__all__ = [
    "__version__",
]
