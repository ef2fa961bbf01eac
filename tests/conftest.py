"""
Test Configuration
==================

Pytest fixtures and test configuration for the crowd dashboard.

The default scene is a project with one area ("main-hall") covered by two
cropped cameras side by side:

    cam-1 / north   crop [0, 10, 10, 10]   -> x in [0, 10],  y in [0, 10]
    cam-2 / south   crop [10, 10, 10, 10]  -> x in [10, 20], y in [0, 10]

The series has three points (10:00, 10:01, 10:02 UTC). The catalog has
cam-1 at 10:00 and 10:02 and cam-2 at 10:01, so focusing on the latest
point resolves cam-1 -> 10:02 and cam-2 -> 10:01.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from crowd_dashboard.errors import ArtifactNotFoundError
from crowd_dashboard.models.density import RawDensityPoint
from crowd_dashboard.models.input import AggregateRequest, AggregateResponse, Project


FIXED_NOW = datetime(2024, 1, 1, 10, 5, 0, tzinfo=timezone.utc)

CAM1_ARTIFACT = "proj-1-cam-1-north-2024_01_01-10_02_00_transformed_density.json"
CAM2_ARTIFACT = "proj-1-cam-2-south-2024_01_01-10_01_00_transformed_density.json"


class FakeBackend:
    """
    In-memory stand-in for BackendClient.

    Attributes:
        series: Response returned by fetch_time_series
        fields: Artifact name -> raw points; unknown names are 404s
        series_errors: Call index -> exception raised by that call
        field_errors: Artifact name -> exception raised for it
        gates: Events awaited by successive fetch_time_series calls
    """

    def __init__(
        self,
        series: Optional[AggregateResponse] = None,
        fields: Optional[Dict[str, List[RawDensityPoint]]] = None,
    ) -> None:
        self.series = series if series is not None else AggregateResponse()
        self.fields = dict(fields or {})
        self.series_errors: Dict[int, Exception] = {}
        self.field_errors: Dict[str, Exception] = {}
        self.gates: List[asyncio.Event] = []
        self.series_calls: List[Tuple[str, AggregateRequest]] = []
        self.field_calls: List[str] = []

    async def fetch_time_series(
        self,
        project_id: str,
        area_id: str,
        request: AggregateRequest,
    ) -> AggregateResponse:
        index = len(self.series_calls)
        self.series_calls.append((area_id, request))
        if index < len(self.gates):
            await self.gates[index].wait()
        if index in self.series_errors:
            raise self.series_errors[index]
        return self.series

    async def fetch_density_field(self, artifact: str) -> List[RawDensityPoint]:
        self.field_calls.append(artifact)
        if artifact in self.field_errors:
            raise self.field_errors[artifact]
        if artifact not in self.fields:
            raise ArtifactNotFoundError("Prediction data not found", status_code=404)
        return self.fields[artifact]


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def project_payload():
    """Provide a project payload as returned by the backend."""
    return {
        "id": "proj-1",
        "name": "Stadium",
        "cameras": [
            {"id": "cam-1", "name": "North Gate"},
            {"id": "cam-2", "name": "South Gate"},
        ],
        "areas": [
            {
                "id": "main-hall",
                "name": "Main Hall",
                "camera_configs": [
                    {
                        "camera_id": "cam-1",
                        "position": {"name": "north"},
                        "heatmap_config": [0, 10, 10, 10],
                    },
                    {
                        "camera_id": "cam-2",
                        "position": {"name": "south"},
                        "heatmap_config": [10, 10, 10, 10],
                    },
                ],
            },
            {
                "id": "annex",
                "name": "Annex",
                "camera_configs": [
                    {
                        "camera_id": "cam-1",
                        "position": {"name": "east"},
                        "name": "Annex Cam",
                    },
                ],
            },
        ],
    }


@pytest.fixture
def project(project_payload) -> Project:
    return Project.model_validate(project_payload)


@pytest.fixture
def main_hall(project):
    return project.get_area("main-hall")


@pytest.fixture
def series_payload():
    """Provide an aggregate response payload."""
    return {
        "time_series": [
            {"timestamp": "2024-01-01T10:00:00Z", "value": 10},
            {"timestamp": "2024-01-01T10:01:00Z", "value": 20},
            {"timestamp": "2024-01-01T10:02:00Z", "value": 31},
        ],
        "camera_timestamps": [
            {"camera_id": "cam-1", "position": "north", "timestamp": "2024-01-01T10:00:00"},
            {"camera_id": "cam-1", "position": "north", "timestamp": "2024-01-01T10:02:00"},
            {"camera_id": "cam-2", "position": "south", "timestamp": "2024-01-01T10:01:00Z"},
        ],
    }


@pytest.fixture
def series(series_payload) -> AggregateResponse:
    return AggregateResponse.model_validate(series_payload)


@pytest.fixture
def fields():
    """Density artifacts for the latest-focus scene."""
    return {
        CAM1_ARTIFACT: [RawDensityPoint(5.0, 5.0, 4.0)],
        CAM2_ARTIFACT: [RawDensityPoint(15.0, 5.0, 2.0)],
    }


@pytest.fixture
def backend(series, fields) -> FakeBackend:
    return FakeBackend(series=series, fields=fields)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def pipeline(backend, project, clock):
    from crowd_dashboard.pipeline import AggregationPipeline

    return AggregationPipeline(backend, project, clock=clock)


@pytest.fixture
def session(pipeline, main_hall, clock):
    from crowd_dashboard.dashboard import DashboardSession

    return DashboardSession(pipeline, main_hall, clock=clock)
