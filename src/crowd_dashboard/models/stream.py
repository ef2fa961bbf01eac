"""
Stream Models
=============

Identity of camera/position streams and the instants at which they have data.

A stream is one camera mounted at one named position. Every density artifact
and every catalog entry belongs to exactly one stream.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class StreamKey:
    """
    Identity of one camera+position combination.

    Immutable and hashable; equality is structural, so two keys built from
    different payloads compare equal when both ids match.

    Attributes:
        camera_id: Camera identifier
        position_id: Position name the camera is mounted at
    """

    camera_id: str
    position_id: str

    @property
    def label(self) -> str:
        """Compact "camera/position" label for logs and JSON keys."""
        return f"{self.camera_id}/{self.position_id}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True, slots=True)
class TimestampSample:
    """
    One moment at which a stream has data.

    Attributes:
        stream: Stream the sample belongs to
        instant: Timezone-aware UTC instant
    """

    stream: StreamKey
    instant: datetime

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.instant.tzinfo is None:
            raise ValueError("instant must be timezone-aware (UTC)")
