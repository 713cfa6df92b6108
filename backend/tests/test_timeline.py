import itertools

import pytest

from domain.models import AttributedTranscriptSegment, ScreenContextEvent, ScreenEntry, TranscriptEntry
from timeline import build_timeline, format_timestamp, render_timeline


@pytest.fixture
def segments():
    return [
        AttributedTranscriptSegment(start=65.4, end=70, speaker_id=1, text="Budget stays flat."),
        AttributedTranscriptSegment(start=0.2, end=5, speaker_id=0, text=" Hello team. "),
        AttributedTranscriptSegment(start=30, end=31, speaker_id=0, text="   "),
    ]


@pytest.fixture
def events():
    return [
        ScreenContextEvent(timestamp=65.4, window_title="Roadmap.key", inference="Slide:\n  Q2   roadmap"),
        ScreenContextEvent(timestamp=10, window_title="Mail", inference="   "),
    ]


class TestBuildTimeline:
    def test_sorted_with_transcript_before_screen_on_ties(self, segments, events):
        entries = build_timeline(segments, events)
        assert [type(e) for e in entries] == [TranscriptEntry, TranscriptEntry, ScreenEntry]
        assert [e.timestamp for e in entries] == [0.2, 65.4, 65.4]

    def test_blank_entries_skipped(self, segments, events):
        entries = build_timeline(segments, events)
        assert all(getattr(e, "text", "x").strip() for e in entries)
        assert not any(isinstance(e, ScreenEntry) and e.window_title == "Mail" for e in entries)

    def test_input_order_does_not_matter(self, segments, events):
        expected = render_timeline(build_timeline(segments, events))
        for seg_perm in itertools.permutations(segments):
            for ev_perm in itertools.permutations(events):
                assert render_timeline(build_timeline(seg_perm, ev_perm)) == expected


class TestRenderTimeline:
    def test_render(self, segments, events):
        text = render_timeline(build_timeline(segments, events))
        assert text == (
            "[00:00] Speaker 1: Hello team.\n"
            "[01:05] Speaker 2: Budget stays flat.\n"
            "[01:05] Screen context - Slide: Q2 roadmap"
        )

    def test_render_twice_identical(self, segments, events):
        entries = build_timeline(segments, events)
        assert render_timeline(entries) == render_timeline(entries)

    def test_empty(self):
        assert render_timeline([]) == ""


@pytest.mark.parametrize("seconds,expected", [
    (0, "00:00"),
    (59.9, "00:59"),
    (61, "01:01"),
    (3599, "59:59"),
    (3661, "01:01:01"),
    (-4, "00:00"),
])
def test_format_timestamp(seconds, expected):
    assert format_timestamp(seconds) == expected
