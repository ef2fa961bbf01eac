"""
Dashboard Module
================

Interactive session state: area, manual controls and live mode.
"""

from crowd_dashboard.dashboard.session import Controls, DashboardSession


__all__ = [
    "Controls",
    "DashboardSession",
]
