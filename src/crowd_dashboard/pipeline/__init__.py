"""
Pipeline Module
===============

Refresh orchestration for the dashboard.

This module provides:
    - AggregationPipeline: Token-gated series + density grid refresh
    - RunRequest / Trigger / RunOutcome: Run parameters and results
    - LiveScheduler: Periodic tick and countdown for live mode
"""

from crowd_dashboard.pipeline.aggregation import (
    AggregationPipeline,
    DensityBackend,
    PipelineMetrics,
    RunOutcome,
    RunRequest,
    Trigger,
)
from crowd_dashboard.pipeline.scheduler import LiveScheduler


__all__ = [
    "AggregationPipeline",
    "DensityBackend",
    "PipelineMetrics",
    "RunOutcome",
    "RunRequest",
    "Trigger",
    "LiveScheduler",
]
