"""
Crowd Dashboard Service
=======================

FastAPI entry point exposing the dashboard core.

Startup loads the configured project from the backend, selects the default
area and runs the pipeline once. Every endpoint reads or drives the single
DashboardSession held in module state.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (project loaded + session ready?)
    GET  /metrics   - Pipeline and backend counters
    GET  /state     - Latest published dashboard snapshot
    GET  /live      - Live mode, countdown and current controls
    POST /controls  - Update manual controls and refresh
    POST /apply     - Refresh with the current controls
    POST /focus     - Align the grid to a clicked series point
    POST /area      - Switch area (turns live mode off)
    POST /live      - Turn live mode on or off
    WS   /ws/state  - Snapshot stream, sent whenever a new one is published
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from crowd_dashboard.backend import BackendClient
from crowd_dashboard.config import settings
from crowd_dashboard.dashboard import DashboardSession
from crowd_dashboard.errors import (
    ControlsLockedError,
    DashboardError,
    UnknownAreaError,
)
from crowd_dashboard.models.input import Project
from crowd_dashboard.pipeline import AggregationPipeline, RunOutcome


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

_startup_time: float = time.time()
_backend: Optional[BackendClient] = None
_session: Optional[DashboardSession] = None
_startup_error: Optional[str] = None


# =============================================================================
# Getters
# =============================================================================

def get_session() -> Optional[DashboardSession]:
    return _session

def get_backend() -> Optional[BackendClient]:
    return _backend


# =============================================================================
# Request Bodies
# =============================================================================

class ControlsUpdate(BaseModel):
    """Partial update of the manual controls."""

    end_date: Optional[datetime] = Field(default=None)
    lookback_hours: Optional[int] = Field(default=None, ge=1)
    half_moving_avg_size: Optional[int] = Field(default=None, ge=0)


class FocusRequest(BaseModel):
    """Clicked series point."""

    timestamp: datetime


class AreaRequest(BaseModel):
    """Area to switch to."""

    area_id: str


class LiveRequest(BaseModel):
    """Live mode toggle."""

    enabled: bool


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Session Factory
# =============================================================================

def create_session(backend: BackendClient, project: Project) -> DashboardSession:
    """
    Build the dashboard session for a loaded project.

    Raises:
        UnknownAreaError: If the configured area is not in the project,
            or the project has no areas
    """
    area_id = settings.dashboard.default_area_id
    if area_id:
        area = project.get_area(area_id)
        if area is None:
            raise UnknownAreaError(f"Configured area {area_id} not in project {project.id}")
    elif project.areas:
        area = project.areas[0]
    else:
        raise UnknownAreaError(f"Project {project.id} has no areas")

    pipeline = AggregationPipeline(
        backend=backend,
        project=project,
        cell_size=settings.density.cell_size,
        ceiling=settings.density.ceiling,
    )
    return DashboardSession(
        pipeline=pipeline,
        area=area,
        lookback_hours=settings.dashboard.lookback_hours,
        half_moving_avg_size=settings.dashboard.half_moving_avg_size,
        refresh_interval=settings.live.refresh_interval_seconds,
        countdown_step=settings.live.countdown_step_seconds,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _backend, _session, _startup_time, _startup_error, _shutdown_flag

    signal.signal(signal.SIGTERM, _handle_sigterm)

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")
    logger.info(f"Backend URL: {settings.backend.base_url}")

    _backend = BackendClient(
        base_url=settings.backend.base_url,
        api_key=settings.backend.api_key,
        timeout_seconds=settings.backend.timeout_seconds,
    )

    initial_run: Optional[asyncio.Task] = None
    if not settings.dashboard.project_id:
        _startup_error = "No project configured (set DASHBOARD_PROJECT_ID)"
        logger.error(_startup_error)
    else:
        try:
            project = await _backend.fetch_project(settings.dashboard.project_id)
            _session = create_session(_backend, project)
            logger.info(
                f"Loaded project {project.id} with {len(project.areas)} areas, "
                f"area {_session.area.id} selected"
            )
            initial_run = asyncio.create_task(_session.apply(), name="initial_run")
        except DashboardError as e:
            _startup_error = str(e)
            logger.error(f"Failed to load project: {e}")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if initial_run is not None and not initial_run.done():
        initial_run.cancel()
        try:
            await initial_run
        except asyncio.CancelledError:
            pass

    if _session:
        await _session.close()
    if _backend:
        await _backend.aclose()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="CrowdDashboard",
    description="Crowd density dashboard core: series, alignment and density grid",
    version=settings.app.version,
    lifespan=lifespan,
)


def _not_ready() -> JSONResponse:
    return JSONResponse(
        {"error": _startup_error or "Dashboard session not initialized"},
        status_code=503,
    )


def _run_response(outcome: RunOutcome, session: DashboardSession) -> JSONResponse:
    snapshot = session.snapshot
    return JSONResponse({
        "outcome": outcome.value,
        "token": snapshot.token,
        "status": snapshot.status.value,
    })


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "CrowdDashboard",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "project_id": settings.dashboard.project_id or None,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the project loaded?

    Returns 200 once the session exists, 503 otherwise.
    """
    session = get_session()
    if session is None:
        return JSONResponse(
            {"status": "not_ready", "error": _startup_error},
            status_code=503,
        )
    return JSONResponse({
        "status": "ready",
        "project_id": session.pipeline.project.id,
        "area_id": session.area.id,
        "pipeline_status": session.snapshot.status.value,
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    backend = get_backend()

    pipeline_metrics = session.pipeline.metrics.to_dict() if session else {}
    backend_metrics = backend.metrics.to_dict() if backend else {}
    live_metrics = {}
    if session:
        live_metrics = {
            "live": session.live,
            "countdown": session.countdown,
            "live_ticks": session.scheduler.ticks,
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        **pipeline_metrics,
        **backend_metrics,
        **live_metrics,
    })


@app.get("/state")
async def state() -> JSONResponse:
    """Get the latest published snapshot."""
    session = get_session()
    if session is None:
        return _not_ready()
    return JSONResponse(session.snapshot.model_dump(mode="json"))


@app.get("/live")
async def live_status() -> JSONResponse:
    """Get live mode, countdown and controls."""
    session = get_session()
    if session is None:
        return _not_ready()
    return JSONResponse(session.live_state())


@app.post("/controls")
async def update_controls(body: ControlsUpdate) -> JSONResponse:
    """Update manual controls and refresh."""
    session = get_session()
    if session is None:
        return _not_ready()
    try:
        outcome = await session.update_controls(
            end_date=body.end_date,
            lookback_hours=body.lookback_hours,
            half_moving_avg_size=body.half_moving_avg_size,
        )
    except ControlsLockedError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    return _run_response(outcome, session)


@app.post("/apply")
async def apply() -> JSONResponse:
    """Refresh with the current controls."""
    session = get_session()
    if session is None:
        return _not_ready()
    try:
        outcome = await session.apply()
    except ControlsLockedError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    return _run_response(outcome, session)


@app.post("/focus")
async def focus(body: FocusRequest) -> JSONResponse:
    """Align the density grid to a clicked series point."""
    session = get_session()
    if session is None:
        return _not_ready()
    outcome = await session.select_point(body.timestamp)
    return _run_response(outcome, session)


@app.post("/area")
async def switch_area(body: AreaRequest) -> JSONResponse:
    """Switch the active area."""
    session = get_session()
    if session is None:
        return _not_ready()
    try:
        outcome = await session.switch_area(body.area_id)
    except UnknownAreaError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    return _run_response(outcome, session)


@app.post("/live")
async def set_live(body: LiveRequest) -> JSONResponse:
    """Turn live mode on or off."""
    session = get_session()
    if session is None:
        return _not_ready()
    await session.set_live(body.enabled)
    return JSONResponse(session.live_state())


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/state")
async def state_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint streaming each newly published snapshot."""
    await websocket.accept()
    logger.info("Client connected to /ws/state")

    last_sent = None
    try:
        while not _shutdown_flag:
            session = get_session()
            if session is not None:
                snapshot = session.snapshot
                key = (snapshot.token, snapshot.status, snapshot.published_at)
                if key != last_sent:
                    await websocket.send_json(snapshot.model_dump(mode="json"))
                    last_sent = key

            # Poll interval doubles as disconnect detection
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                break

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/state")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "crowd_dashboard.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
