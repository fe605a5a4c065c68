"""
Tests for timeline geometry
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clipforge.core import geometry
from clipforge.core.geometry import (
    clamp_zoom,
    clip_width,
    generate_markers,
    offset_to_time,
    time_to_offset,
    track_index,
    track_offset,
)


class TestTimeOffset:
    """Tests for time <-> pixel conversion."""

    def test_linear_scale(self):
        assert time_to_offset(2.0) == 200
        assert time_to_offset(2.0, zoom=0.5) == 100
        assert offset_to_time(300, zoom=2.0) == 1.5

    @pytest.mark.parametrize("seconds", [0.0, 0.1, 1.0, 3.3333, 59.94, 7200.0])
    @pytest.mark.parametrize("zoom", [0.25, 0.7, 1.0, 3.9])
    def test_round_trip(self, seconds, zoom):
        assert offset_to_time(time_to_offset(seconds, zoom), zoom) == pytest.approx(seconds)

    def test_zoom_must_be_positive(self):
        with pytest.raises(ValueError):
            time_to_offset(1.0, 0)

    def test_clamp_zoom(self):
        assert clamp_zoom(10) == geometry.MAX_ZOOM
        assert clamp_zoom(0.01) == geometry.MIN_ZOOM
        assert clamp_zoom(1.5) == 1.5

    def test_clip_width_is_nan_safe(self):
        assert clip_width(2.0) == 200
        assert clip_width(float("nan")) == 0
        assert clip_width(-3) == 0


class TestTracks:
    """Tests for vertical track layout."""

    def test_track_index(self):
        assert track_index(0) == 0
        assert track_index(89) == 0
        assert track_index(90) == 1
        assert track_index(500) == 1
        assert track_index(-40) == 0

    def test_track_offset(self):
        assert track_offset(0) == 0
        assert track_offset(1) == 90

    def test_offset_maps_back_to_track(self):
        for i in range(geometry.NUM_TRACKS):
            assert track_index(track_offset(i)) == i


class TestMarkers:
    """Tests for ruler markers."""

    def test_includes_total(self):
        assert generate_markers(20) == [0, 5, 10, 15, 20]

    def test_partial_interval(self):
        assert generate_markers(12.5) == [0, 5, 10]

    def test_zero_duration(self):
        assert generate_markers(0) == [0]

    def test_custom_interval(self):
        assert generate_markers(3, interval=1) == [0, 1, 2, 3]
