"""
Tests for the timeline model
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clipforge.core.geometry import MAIN_TRACK, OVERLAY_TRACK
from clipforge.core.models import Caption
from clipforge.core.timeline import Timeline


@pytest.fixture
def timeline(make_source):
    """Timeline with three 10s clips on the main track."""
    tl = Timeline()
    for clip_id in ("a", "b", "c"):
        tl.place(tl.import_clip(make_source(clip_id)))
    return tl


def starts(timeline, track=MAIN_TRACK):
    return [(c.id, c.start_time) for c in timeline.track_clips(track)]


class TestPlace:
    """Tests for placing clips."""

    def test_appends_at_track_end(self, timeline):
        assert starts(timeline) == [("a", 0.0), ("b", 10.0), ("c", 20.0)]
        assert timeline.total_duration() == 30.0

    def test_full_trim_range(self, timeline):
        clip = timeline.get("a")
        assert clip.trim_start == 0.0
        assert clip.trim_end == clip.duration == 10.0
        assert not clip.is_trimmed

    def test_tracks_are_independent(self, timeline, make_source):
        clip = timeline.place(make_source("o", duration=4.0), track=OVERLAY_TRACK)
        assert clip.start_time == 0.0
        assert clip.track == OVERLAY_TRACK

    def test_out_of_range_track_is_clamped(self, make_source):
        tl = Timeline()
        assert tl.place(make_source("x"), track=7).track == OVERLAY_TRACK
        assert tl.place(make_source("y"), track=-2).track == MAIN_TRACK

    def test_duplicate_id_is_rejected(self, timeline, make_source):
        """Placing an id that is already present changes nothing."""
        assert timeline.place(make_source("a")) is None
        assert len(timeline) == 3

    def test_place_then_remove_restores_timeline(self, timeline, make_source):
        before = [c.to_dict() for c in timeline.clips]
        total = timeline.total_duration()
        timeline.place(make_source("d", duration=3.0))
        assert timeline.total_duration() == total + 3.0
        timeline.remove("d")
        assert timeline.total_duration() == total
        assert [c.to_dict() for c in timeline.clips] == before


class TestRemove:
    """Tests for removing clips."""

    def test_shifts_later_clips_left(self, timeline):
        timeline.remove("b")
        assert starts(timeline) == [("a", 0.0), ("c", 10.0)]

    def test_other_track_untouched(self, timeline, make_source):
        timeline.place(make_source("o", duration=5.0), track=OVERLAY_TRACK)
        timeline.move("o", 12.0, OVERLAY_TRACK)
        timeline.remove("a")
        assert timeline.get("o").start_time == 12.0

    def test_shift_uses_effective_duration(self, timeline):
        timeline.set_trim("a", 2.0, 6.0)
        timeline.remove("a")
        assert starts(timeline) == [("b", 0.0), ("c", 10.0)]

    def test_clears_selection(self, timeline):
        timeline.select("b")
        timeline.remove("b")
        assert timeline.selected_clip_id is None

    def test_unknown_id(self, timeline):
        assert timeline.remove("zzz") is None
        assert len(timeline) == 3

    def test_clamps_playhead(self, timeline):
        timeline.set_playhead(28.0)
        timeline.remove("c")
        assert timeline.playhead == 20.0


class TestSetTrim:
    """Tests for trimming and relayout."""

    def test_trim_relays_out_track(self, timeline):
        timeline.set_trim("a", 2.0, 6.0)
        clip = timeline.get("a")
        assert (clip.trim_start, clip.trim_end) == (2.0, 6.0)
        assert starts(timeline) == [("a", 0.0), ("b", 4.0), ("c", 14.0)]
        assert timeline.total_duration() == 24.0

    def test_values_clamped_to_source(self, timeline):
        clip = timeline.set_trim("a", -5.0, 50.0)
        assert (clip.trim_start, clip.trim_end) == (0.0, 10.0)

    def test_minimum_separation(self, timeline):
        clip = timeline.set_trim("a", 5.0, 5.1)
        assert clip.trim_start == 5.0
        assert clip.trim_end == pytest.approx(5.5)

    def test_minimum_separation_at_source_end(self, timeline):
        clip = timeline.set_trim("a", 9.9, 10.0)
        assert clip.trim_end == 10.0
        assert clip.trim_start == pytest.approx(9.5)

    def test_relayout_closes_gaps(self, timeline):
        timeline.move("c", 40.0, MAIN_TRACK)
        timeline.set_trim("b", 0.0, 5.0)
        assert starts(timeline) == [("a", 0.0), ("b", 10.0), ("c", 15.0)]

    def test_unknown_id(self, timeline):
        assert timeline.set_trim("zzz", 0, 1) is None


class TestSplit:
    """Tests for splitting clips."""

    def test_split_in_middle(self, timeline):
        first, second = timeline.split("b", 14.0)

        assert (first.trim_start, first.trim_end, first.start_time) == (0.0, 4.0, 10.0)
        assert (second.trim_start, second.trim_end, second.start_time) == (4.0, 10.0, 14.0)
        assert first.end_time == second.start_time
        assert first.source_id == second.source_id == "b"

    def test_split_keeps_total_and_order(self, timeline):
        total = timeline.total_duration()
        first, second = timeline.split("b", 14.0)

        assert timeline.total_duration() == total
        assert [c.id for c in timeline.clips] == ["a", first.id, second.id, "c"]
        assert "b" not in timeline

    def test_ids_are_unique(self, timeline):
        first, second = timeline.split("b", 14.0)
        assert first.id != second.id
        third, fourth = timeline.split(second.id, 17.0)
        ids = [c.id for c in timeline.clips]
        assert len(ids) == len(set(ids))

    def test_selects_first_half(self, timeline):
        first, _ = timeline.split("b", 14.0)
        assert timeline.selected_clip_id == first.id

    def test_split_of_trimmed_clip(self, timeline):
        timeline.set_trim("a", 2.0, 8.0)
        first, second = timeline.split("a", 1.5)
        assert first.trim_end == second.trim_start == 3.5
        assert second.trim_end == 8.0

    @pytest.mark.parametrize("at", [10.0, 20.0, 5.0, 25.0])
    def test_split_outside_clip_is_noop(self, timeline, at):
        """Splitting on a clip's edge or outside it changes nothing."""
        before = [c.to_dict() for c in timeline.clips]
        assert timeline.split("b", at) is None
        assert [c.to_dict() for c in timeline.clips] == before

    def test_captions_are_not_shared(self, make_source):
        tl = Timeline()
        tl.place(make_source("a", captions=[Caption(1, 2, "hi")]))
        first, second = tl.split("a", 5.0)
        first.captions[0].text = "changed"
        assert second.captions[0].text == "hi"

    def test_split_at_playhead(self, timeline):
        timeline.select("c")
        timeline.set_playhead(25.0)
        first, second = timeline.split_at_playhead()
        assert first.effective_duration == second.effective_duration == 5.0

    def test_split_at_playhead_without_selection(self, timeline):
        assert timeline.split_at_playhead() is None


class TestMoveAndSelect:
    """Tests for moving, selection and playhead."""

    def test_move_clamps(self, timeline):
        clip = timeline.move("a", -3.0, 5)
        assert clip.start_time == 0.0
        assert clip.track == OVERLAY_TRACK

    def test_move_allows_overlap(self, timeline):
        timeline.move("c", 5.0, MAIN_TRACK)
        assert timeline.get("c").start_time == 5.0

    def test_select_unknown_is_ignored(self, timeline):
        timeline.select("a")
        timeline.select("nope")
        assert timeline.selected_clip_id == "a"

    def test_delete_selected(self, timeline):
        timeline.select("a")
        removed = timeline.delete_selected()
        assert removed.id == "a"
        assert starts(timeline) == [("b", 0.0), ("c", 10.0)]

    def test_playhead_clamped(self, timeline):
        assert timeline.set_playhead(100.0) == 30.0
        assert timeline.set_playhead(-1.0) == 0.0

    def test_clip_at(self, timeline):
        assert timeline.clip_at(10.0).id == "b"
        assert timeline.clip_at(30.0) is None


class TestLibrary:
    """Tests for the media library."""

    def test_remove_source_cascades(self, timeline):
        timeline.split("b", 14.0)
        removed = timeline.remove_source("b")

        assert len(removed) == 2
        assert starts(timeline) == [("a", 0.0), ("c", 10.0)]
        assert "b" not in [s.id for s in timeline.sources]

    def test_attach_captions(self, timeline):
        timeline.attach_captions("a", [Caption(5, 6, "second"), Caption(1, 2, "first")])
        assert [c.text for c in timeline.get("a").captions] == ["first", "second"]
        assert [c.text for c in timeline.sources[0].captions] == ["first", "second"]


class TestPersistence:
    """Tests for to_dict/from_dict."""

    def test_round_trip(self, timeline):
        timeline.set_trim("b", 1.0, 9.0)
        timeline.select("c")
        timeline.set_playhead(12.5)

        restored = Timeline.from_dict(timeline.to_dict())

        assert [c.to_dict() for c in restored.clips] == [c.to_dict() for c in timeline.clips]
        assert restored.selected_clip_id == "c"
        assert restored.playhead == 12.5
        assert len(restored.sources) == 3

    def test_snapshot_is_independent(self, timeline):
        snapshot = timeline.snapshot()
        snapshot[0].trim_start = 5.0
        assert timeline.get("a").trim_start == 0.0

    def test_clear(self, timeline):
        timeline.clear()
        assert len(timeline) == 0
        assert timeline.total_duration() == 0
