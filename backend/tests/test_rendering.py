from datetime import datetime, timezone

from domain.models import AttributedTranscriptSegment
from models import ActionItem, MeetingExtraction
from rendering import format_processed_at, render_note, render_transcript, yaml_double_quoted
from timeline import build_timeline, render_timeline

AUDIO = "Meetings/_audio/2024-03-05 14.30 - Weekly Sync.wav"
TRANSCRIPT = "Meetings/_transcripts/2024-03-05 14.30 - Weekly Sync.md"


def weekly_sync() -> MeetingExtraction:
    return MeetingExtraction(
        title="Weekly Sync",
        date="2024-03-05",
        summary="Discussed Q2 roadmap.",
        decisions=["Ship v2"],
        action_items=[ActionItem(owner="Ana", task="Draft spec")],
        open_questions=[],
        key_points=["Budget flat"],
    )


class TestRenderNote:
    def test_golden(self):
        expected = (
            "---\n"
            "type: meeting\n"
            "date: 2024-03-05\n"
            'title: "Weekly Sync"\n'
            f'audio: "{AUDIO}"\n'
            f'transcript: "{TRANSCRIPT}"\n'
            'source: "Minute"\n'
            "---\n"
            "\n"
            "# Weekly Sync\n"
            "\n"
            "## Summary\n"
            "Discussed Q2 roadmap.\n"
            "\n"
            "## Decisions\n"
            "- Ship v2\n"
            "\n"
            "## Action Items\n"
            "- [ ] Draft spec (Owner: Ana)\n"
            "\n"
            "## Open Questions\n"
            "\n"
            "## Key Points\n"
            "- Budget flat\n"
            "\n"
            "## Audio\n"
            f"[[{AUDIO}]]\n"
            "\n"
            "## Transcript\n"
            f"[[{TRANSCRIPT}]]\n"
        )
        assert render_note(weekly_sync(), audio_path=AUDIO, transcript_path=TRANSCRIPT) == expected

    def test_weekly_sync_scenario(self):
        note = render_note(weekly_sync(), audio_path=AUDIO, transcript_path=TRANSCRIPT)
        assert 'title: "Weekly Sync"' in note
        action_section = note.split("## Action Items\n")[1].split("\n\n")[0]
        assert "- [ ] Draft spec (Owner: Ana)" in action_section
        assert "## Open Questions\n\n## Key Points" in note

    def test_without_audio_or_transcript(self):
        note = render_note(weekly_sync())
        assert "audio:" not in note
        assert "transcript:" not in note
        assert "## Audio" not in note
        assert "## Transcript" not in note
        assert note.endswith("- Budget flat\n")

    def test_action_item_without_owner(self):
        extraction = weekly_sync().model_copy(update={"action_items": [ActionItem(owner="", task="Book room")]})
        assert "- [ ] Book room\n" in render_note(extraction)

    def test_frontmatter_escaping(self):
        extraction = weekly_sync().model_copy(update={"title": 'Say "hi" \\ bye'})
        note = render_note(extraction)
        assert 'title: "Say \\"hi\\" \\\\ bye"' in note

    def test_processed_at_replaces_date(self):
        processed = datetime(2024, 3, 5, 15, 0, tzinfo=timezone.utc)
        note = render_note(weekly_sync(), processed_at=processed)
        assert f"date: {format_processed_at(processed)}\n" in note

    def test_deterministic(self):
        processed = datetime(2024, 3, 5, 15, 0, tzinfo=timezone.utc)
        first = render_note(weekly_sync(), AUDIO, TRANSCRIPT, processed)
        second = render_note(weekly_sync(), AUDIO, TRANSCRIPT, processed)
        assert first == second


class TestRenderTranscript:
    def test_speaker_blocks(self):
        segments = [
            AttributedTranscriptSegment(start=0, end=4.2, speaker_id=0, text="Hello team."),
            AttributedTranscriptSegment(start=65, end=70, speaker_id=1, text=" Budget flat. "),
        ]
        text = render_transcript("Weekly/Sync", "2024-03-05", "ignored", segments)
        assert text == (
            "---\n"
            "type: meeting_transcript\n"
            "date: 2024-03-05\n"
            'title: "Weekly Sync"\n'
            'source: "Minute"\n'
            "---\n"
            "\n"
            "# Weekly Sync — Transcript\n"
            "\n"
            "Speaker 0 [00:00 - 00:04]\n"
            "Hello team.\n"
            "\n"
            "Speaker 1 [01:05 - 01:10]\n"
            "Budget flat.\n"
        )

    def test_plain_text_when_unattributed(self):
        text = render_transcript("Standup", "2024-03-05", "  line one\r\nline two  ", None)
        assert text.endswith("# Standup — Transcript\n\nline one\nline two\n")

    def test_empty_transcript(self):
        text = render_transcript("Standup", "2024-03-05", "   ", [])
        assert text.endswith("# Standup — Transcript\n")


def test_yaml_double_quoted_newline():
    assert yaml_double_quoted("a\nb") == '"a\\nb"'


def test_transcript_keeps_raw_speaker_id_while_timeline_is_one_based():
    segments = [AttributedTranscriptSegment(start=0, end=3, speaker_id=2, text="hi")]
    transcript = render_transcript("T", "2024-03-05", "hi", segments)
    assert "Speaker 2 [00:00 - 00:03]\nhi\n" in transcript
    assert render_timeline(build_timeline(segments, [])) == "[00:00] Speaker 3: hi"
