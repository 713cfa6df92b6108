"""Deterministic Markdown rendering of the meeting note and transcript files.

The model never writes Markdown. It only produces JSON that is decoded and
validated into MeetingExtraction; everything below is fixed templating.
"""

from datetime import datetime
from typing import Optional

from domain.models import AttributedTranscriptSegment
from extraction_validation import normalize_inline, normalize_paragraph
from file_contract import UNTITLED, sanitize_title
from models import ActionItem, MeetingExtraction
from timeline import format_timestamp

SOURCE = "Minute"


def yaml_double_quoted(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_processed_at(processed_at: datetime) -> str:
    """Note frontmatter date for the processing time, in local time."""
    return processed_at.astimezone().strftime("%Y-%m-%d %H:%M")


def _bullets(items: list[str]) -> list[str]:
    cleaned = (normalize_inline(item) for item in items)
    return [f"- {item}" for item in cleaned if item]


def _action_items(items: list[ActionItem]) -> list[str]:
    lines = []
    for item in items:
        owner = normalize_inline(item.owner)
        task = normalize_inline(item.task)
        if not owner and not task:
            continue
        if owner:
            lines.append(f"- [ ] {task} (Owner: {owner})")
        else:
            lines.append(f"- [ ] {task}")
    return lines


def render_note(
    extraction: MeetingExtraction,
    audio_path: Optional[str] = None,
    transcript_path: Optional[str] = None,
    processed_at: Optional[datetime] = None,
) -> str:
    """Render the meeting note. Identical arguments give identical output."""
    title = normalize_inline(extraction.title) or UNTITLED
    date = format_processed_at(processed_at) if processed_at else extraction.date

    lines = [
        "---",
        "type: meeting",
        f"date: {date}",
        f"title: {yaml_double_quoted(title)}",
    ]
    if audio_path is not None:
        lines.append(f"audio: {yaml_double_quoted(audio_path)}")
    if transcript_path is not None:
        lines.append(f"transcript: {yaml_double_quoted(transcript_path)}")
    lines += [f'source: "{SOURCE}"', "---", ""]

    lines += [f"# {title}", ""]

    lines.append("## Summary")
    lines.append(normalize_paragraph(extraction.summary))
    lines.append("")

    # Section headers are always present, even with no bullets beneath.
    lines.append("## Decisions")
    lines += _bullets(extraction.decisions)
    lines.append("")

    lines.append("## Action Items")
    lines += _action_items(extraction.action_items)
    lines.append("")

    lines.append("## Open Questions")
    lines += _bullets(extraction.open_questions)
    lines.append("")

    lines.append("## Key Points")
    lines += _bullets(extraction.key_points)
    lines.append("")

    if audio_path is not None:
        lines += ["## Audio", f"[[{audio_path}]]", ""]

    if transcript_path is not None:
        lines += ["## Transcript", f"[[{transcript_path}]]"]

    return "\n".join(lines).rstrip("\n") + "\n"


def render_transcript(
    title: str,
    date_iso: str,
    transcript: str,
    segments: Optional[list[AttributedTranscriptSegment]] = None,
) -> str:
    """Render the transcript file: speaker blocks when attributed, else one text blob."""
    safe_title = sanitize_title(title)

    lines = [
        "---",
        "type: meeting_transcript",
        f"date: {date_iso}",
        f"title: {yaml_double_quoted(safe_title)}",
        f'source: "{SOURCE}"',
        "---",
        "",
        f"# {safe_title} — Transcript",
        "",
    ]

    if segments:
        blocks = []
        for seg in segments:
            header = f"Speaker {seg.speaker_id} [{format_timestamp(seg.start)} - {format_timestamp(seg.end)}]"
            blocks.append(f"{header}\n{seg.text.strip()}")
        lines.append("\n\n".join(blocks))
    else:
        body = normalize_paragraph(transcript)
        if body:
            lines.append(body)

    return "\n".join(lines).rstrip("\n") + "\n"
