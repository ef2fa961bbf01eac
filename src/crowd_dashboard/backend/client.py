"""
Backend Client
==============

Async HTTP client for the density backend.

This client:
    - Fetches the project layout (areas and camera configurations)
    - Requests the aggregated crowd count series with its timestamp catalog
    - Downloads per-stream transformed-density artifacts
    - Validates every payload before handing it to the pipeline
    - Converts transport and HTTP failures into BackendError subclasses

Design Rules:
    - Requests are idempotent reads; no retries, no transport-level cancel
    - Every request carries the X-API-KEY header
    - Partial camera coverage is reported as PartialCameraMismatchError,
      recognised by HTTP 409 or by the backend's error detail text
    - A missing artifact is ArtifactNotFoundError, never a generic failure

Example:
    async with BackendClient(settings.backend.base_url, api_key="...") as client:
        project = await client.fetch_project("stadium")
        series = await client.fetch_time_series("stadium", "north-stand", request)
"""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from crowd_dashboard.errors import (
    ArtifactNotFoundError,
    BackendError,
    PartialCameraMismatchError,
    PayloadError,
)
from crowd_dashboard.geometry.field import parse_raw_points
from crowd_dashboard.models.density import RawDensityPoint
from crowd_dashboard.models.input import AggregateRequest, AggregateResponse, Project


logger = logging.getLogger(__name__)


PARTIAL_DATA_STATUS = 409
PARTIAL_DATA_MARKER = "Some cameras in this area do not have data"


class BackendClientMetrics:
    """Metrics for BackendClient observability."""

    __slots__ = (
        "requests_sent",
        "request_failures",
        "payload_errors",
        "artifacts_missing",
    )

    def __init__(self) -> None:
        self.requests_sent: int = 0
        self.request_failures: int = 0
        self.payload_errors: int = 0
        self.artifacts_missing: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "requests_sent": self.requests_sent,
            "request_failures": self.request_failures,
            "payload_errors": self.payload_errors,
            "artifacts_missing": self.artifacts_missing,
        }


class BackendClient:
    """
    Async client for the density backend API.

    Attributes:
        base_url: Backend API root, e.g. http://host/api/v1
        metrics: Operational metrics
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize backend client.

        Args:
            base_url: Backend API root
            api_key: Value for the X-API-KEY header
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.metrics = BackendClientMetrics()

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-KEY"] = api_key

        self._client = httpx.AsyncClient(
            base_url=self.base_url + "/",
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def fetch_project(self, project_id: str) -> Project:
        """
        Fetch a project with its cameras and areas.

        Raises:
            BackendError: On transport or HTTP failure
            PayloadError: If the body is not a valid project
        """
        response = await self._request("GET", f"projects/{project_id}")
        if response.is_error:
            raise self._http_error(response, "Failed to fetch project")
        return self._validate(Project, self._decode_json(response))

    async def fetch_time_series(
        self,
        project_id: str,
        area_id: str,
        request: AggregateRequest,
    ) -> AggregateResponse:
        """
        Fetch the aggregated crowd count series and timestamp catalog.

        Args:
            project_id: Project identifier
            area_id: Area identifier
            request: Window and smoothing parameters

        Returns:
            Validated AggregateResponse

        Raises:
            PartialCameraMismatchError: If only some cameras have data
            BackendError: On any other transport or HTTP failure
            PayloadError: If the body is malformed
        """
        response = await self._request(
            "POST",
            f"projects/{project_id}/areas/{area_id}/predictions/aggregate",
            json=request.to_payload(),
        )

        if response.is_error:
            detail = self._error_detail(response)
            if response.status_code == PARTIAL_DATA_STATUS or (
                detail and PARTIAL_DATA_MARKER in detail
            ):
                logger.warning(f"Partial camera data for area {area_id}: {detail}")
                raise PartialCameraMismatchError(
                    detail or f"{PARTIAL_DATA_MARKER} for the selected time range",
                    status_code=response.status_code,
                )
            raise self._http_error(response, "Failed to aggregate predictions")

        result = self._validate(AggregateResponse, self._decode_json(response))
        logger.debug(
            f"Series for area {area_id}: {len(result.time_series)} points, "
            f"{len(result.camera_timestamps)} catalog entries"
        )
        return result

    async def fetch_density_field(self, artifact: str) -> List[RawDensityPoint]:
        """
        Download and parse one transformed-density artifact.

        Args:
            artifact: Artifact name (see alignment.artifact_name)

        Returns:
            Raw density points

        Raises:
            ArtifactNotFoundError: If the artifact does not exist
            BackendError: On any other transport or HTTP failure
            PayloadError: If the artifact is not a list of triples
        """
        response = await self._request("GET", f"blobs/predictions/{artifact}")

        if response.status_code == 404:
            self.metrics.artifacts_missing += 1
            raise ArtifactNotFoundError("Prediction data not found", status_code=404)
        if response.is_error:
            raise self._http_error(response, "Failed to fetch prediction data")

        try:
            return parse_raw_points(self._decode_json(response))
        except PayloadError:
            self.metrics.payload_errors += 1
            raise

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.aclose()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        self.metrics.requests_sent += 1
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self.metrics.request_failures += 1
            logger.error(f"{method} {path} failed: {e}")
            raise BackendError(str(e) or type(e).__name__) from e

        if response.is_error:
            self.metrics.request_failures += 1
            logger.warning(f"{method} {path} -> HTTP {response.status_code}")
        return response

    def _decode_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            self.metrics.payload_errors += 1
            raise PayloadError(f"Response is not valid JSON: {e}") from e

    def _validate(self, model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            self.metrics.payload_errors += 1
            raise PayloadError(
                f"Invalid {model.__name__} payload: {e.error_count()} validation errors"
            ) from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> Optional[str]:
        """Extract the backend's error detail from a failed response."""
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("error")
            if detail is not None:
                return str(detail)
        return None

    def _http_error(self, response: httpx.Response, fallback: str) -> BackendError:
        if response.status_code == 403:
            return BackendError(
                "You do not have permission to access this project",
                status_code=403,
            )
        detail = self._error_detail(response)
        message = detail or f"{fallback}: HTTP {response.status_code} {response.reason_phrase}"
        return BackendError(message, status_code=response.status_code)
