"""
Timestamp Index
===============

Nearest-timestamp lookup over a catalog of per-stream sample instants.

Every camera/position stream produces density artifacts on its own cadence,
so a user-selected instant rarely matches an artifact exactly. This module
resolves, per stream, the catalog instant closest to a target instant.

Rules:
    - Matching is exact on BOTH camera_id and position_id
    - Distance is |instant - target| in milliseconds, computed in UTC
    - Ties resolve to the first occurrence in catalog order
    - No entries for the stream -> None ("no data for this stream")

Note:
    The first-occurrence tie-break mirrors how catalogs have always been
    searched. Whether an earlier or later instant should win on an exact
    tie has not been checked against real catalogs.

Example:
    from crowd_dashboard.alignment import nearest
    from crowd_dashboard.models import StreamKey

    instant = nearest(catalog, StreamKey("cam-1", "north"), target)
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence

from crowd_dashboard.models.stream import StreamKey, TimestampSample
from crowd_dashboard.timeutils import parse_utc


logger = logging.getLogger(__name__)


ARTIFACT_SUFFIX = "_transformed_density.json"


def _distance_ms(instant: datetime, target: datetime) -> float:
    return abs((instant - target).total_seconds()) * 1000.0


def nearest(
    catalog: Sequence[TimestampSample],
    stream: StreamKey,
    target: datetime,
) -> Optional[datetime]:
    """
    Find the catalog instant of `stream` closest to `target`.

    Args:
        catalog: Available samples, in backend order
        stream: Stream to search for
        target: Target instant (naive datetimes are taken as UTC)

    Returns:
        Closest instant, or None if the stream has no entries
    """
    target_utc = parse_utc(target)
    matches = [sample for sample in catalog if sample.stream == stream]

    if not matches:
        logger.debug(f"No catalog entries for stream {stream}")
        return None

    # min() keeps the first of equal keys, which gives the first-occurrence tie-break
    closest = min(matches, key=lambda s: _distance_ms(s.instant, target_utc))
    return closest.instant


def nearest_lookup(
    catalog: Sequence[TimestampSample],
    streams: Iterable[StreamKey],
    target: datetime,
) -> Dict[StreamKey, Optional[datetime]]:
    """
    Resolve the nearest instant for every stream at once.

    Args:
        catalog: Available samples
        streams: Streams to resolve
        target: Target instant

    Returns:
        Mapping stream -> nearest instant (None when the stream has no data)
    """
    return {stream: nearest(catalog, stream, target) for stream in streams}


def format_artifact_timestamp(instant: datetime) -> str:
    """
    Format an instant for use in artifact names.

    Milliseconds are dropped and separators replaced, always in UTC:
        2023-04-01T14:30:45.000Z -> 2023_04_01-14_30_45
    """
    return parse_utc(instant).strftime("%Y_%m_%d-%H_%M_%S")


def artifact_name(
    project_id: str,
    camera_id: str,
    position_id: str,
    instant: datetime,
) -> str:
    """
    Compose the transformed-density artifact name for one stream sample.

    Format:
        {project}-{camera}-{position}-{YYYY_MM_DD-HH_MM_SS}_transformed_density.json
    """
    return (
        f"{project_id}-{camera_id}-{position_id}-"
        f"{format_artifact_timestamp(instant)}{ARTIFACT_SUFFIX}"
    )
