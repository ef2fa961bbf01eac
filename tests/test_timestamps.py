"""
Timestamp Index Tests
=====================

Nearest-instant lookup, UTC parsing and artifact naming.
"""

from datetime import datetime, timedelta, timezone

import pytest

from crowd_dashboard.alignment import (
    artifact_name,
    format_artifact_timestamp,
    nearest,
    nearest_lookup,
)
from crowd_dashboard.models.stream import StreamKey, TimestampSample
from crowd_dashboard.timeutils import parse_utc, to_iso_z


CAM1_A = StreamKey("cam1", "posA")
CAM1_B = StreamKey("cam1", "posB")
CAM2_A = StreamKey("cam2", "posA")


def sample(stream: StreamKey, text: str) -> TimestampSample:
    return TimestampSample(stream=stream, instant=parse_utc(text))


class TestParseUtc:
    """UTC normalization of backend timestamps."""

    def test_z_suffix(self):
        parsed = parse_utc("2024-01-01T10:00:00Z")
        assert parsed == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_string_is_utc(self):
        assert parse_utc("2024-01-01T10:00:00") == parse_utc("2024-01-01T10:00:00Z")

    def test_offset_is_converted(self):
        parsed = parse_utc("2024-01-01T12:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_naive_datetime_is_utc(self):
        parsed = parse_utc(datetime(2024, 1, 1, 10, 0))
        assert parsed.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["not a date", "", 12345])
    def test_invalid_raises(self, value):
        with pytest.raises(ValueError):
            parse_utc(value)

    def test_to_iso_z_drops_fraction(self):
        instant = datetime(2024, 1, 1, 10, 0, 0, 500000, tzinfo=timezone.utc)
        assert to_iso_z(instant) == "2024-01-01T10:00:00Z"


class TestNearest:
    """Nearest catalog instant per stream."""

    def test_documented_example(self):
        catalog = [
            sample(CAM1_A, "2024-01-01T10:00:00Z"),
            sample(CAM1_A, "2024-01-01T10:05:00Z"),
        ]
        result = nearest(catalog, CAM1_A, parse_utc("2024-01-01T10:02:00Z"))
        assert result == parse_utc("2024-01-01T10:00:00Z")

    def test_picks_later_when_closer(self):
        catalog = [
            sample(CAM1_A, "2024-01-01T10:00:00Z"),
            sample(CAM1_A, "2024-01-01T10:05:00Z"),
        ]
        result = nearest(catalog, CAM1_A, parse_utc("2024-01-01T10:04:00Z"))
        assert result == parse_utc("2024-01-01T10:05:00Z")

    def test_matches_both_camera_and_position(self):
        catalog = [
            sample(CAM1_B, "2024-01-01T10:02:00Z"),
            sample(CAM2_A, "2024-01-01T10:02:00Z"),
            sample(CAM1_A, "2024-01-01T09:00:00Z"),
        ]
        result = nearest(catalog, CAM1_A, parse_utc("2024-01-01T10:02:00Z"))
        assert result == parse_utc("2024-01-01T09:00:00Z")

    def test_no_entries_returns_none(self):
        catalog = [sample(CAM2_A, "2024-01-01T10:00:00Z")]
        assert nearest(catalog, CAM1_A, parse_utc("2024-01-01T10:00:00Z")) is None
        assert nearest([], CAM1_A, parse_utc("2024-01-01T10:00:00Z")) is None

    def test_tie_resolves_to_first_occurrence(self):
        catalog = [
            sample(CAM1_A, "2024-01-01T10:03:00Z"),
            sample(CAM1_A, "2024-01-01T10:01:00Z"),
        ]
        result = nearest(catalog, CAM1_A, parse_utc("2024-01-01T10:02:00Z"))
        assert result == parse_utc("2024-01-01T10:03:00Z")

    def test_result_is_minimal_distance(self):
        base = parse_utc("2024-01-01T00:00:00Z")
        offsets = [17, -3, 250, 42, -90, 5]
        catalog = [
            TimestampSample(stream=CAM1_A, instant=base + timedelta(seconds=s))
            for s in offsets
        ]
        for target_offset in (-100, 0, 4, 30, 1000):
            target = base + timedelta(seconds=target_offset)
            result = nearest(catalog, CAM1_A, target)
            best = min(abs((s.instant - target).total_seconds()) for s in catalog)
            assert abs((result - target).total_seconds()) == best

    def test_naive_target_is_utc(self):
        catalog = [sample(CAM1_A, "2024-01-01T10:00:00Z")]
        result = nearest(catalog, CAM1_A, datetime(2024, 1, 1, 10, 0))
        assert result == parse_utc("2024-01-01T10:00:00Z")

    def test_lookup_covers_every_stream(self):
        catalog = [
            sample(CAM1_A, "2024-01-01T10:00:00Z"),
            sample(CAM2_A, "2024-01-01T10:01:00Z"),
        ]
        lookup = nearest_lookup(
            catalog,
            [CAM1_A, CAM2_A, CAM1_B],
            parse_utc("2024-01-01T10:00:30Z"),
        )
        assert lookup == {
            CAM1_A: parse_utc("2024-01-01T10:00:00Z"),
            CAM2_A: parse_utc("2024-01-01T10:01:00Z"),
            CAM1_B: None,
        }


class TestArtifactNaming:
    """Transformed-density artifact names."""

    def test_timestamp_format(self):
        instant = parse_utc("2023-04-01T14:30:45.123Z")
        assert format_artifact_timestamp(instant) == "2023_04_01-14_30_45"

    def test_timestamp_format_converts_to_utc(self):
        instant = parse_utc("2023-04-01T16:30:45+02:00")
        assert format_artifact_timestamp(instant) == "2023_04_01-14_30_45"

    def test_artifact_name(self):
        name = artifact_name("proj", "cam-1", "north", parse_utc("2023-04-01T14:30:45Z"))
        assert name == "proj-cam-1-north-2023_04_01-14_30_45_transformed_density.json"


class TestTimestampSample:
    """Sample invariants."""

    def test_requires_aware_instant(self):
        with pytest.raises(ValueError):
            TimestampSample(stream=CAM1_A, instant=datetime(2024, 1, 1))

    def test_stream_label(self):
        assert CAM1_A.label == "cam1/posA"
        assert str(CAM1_A) == "cam1/posA"
