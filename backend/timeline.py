"""Meeting timeline: merge speech and screen context into one prompt log.

Entries are sorted by timestamp; on exact ties transcript entries come before
screen entries. Rendering is a pure function of the entries.
"""

import math
from typing import Iterable

from domain.models import (
    AttributedTranscriptSegment,
    ScreenContextEvent,
    ScreenEntry,
    TimelineEntry,
    TranscriptEntry,
)

_KIND_ORDER = {"transcript": 0, "screen": 1}


def format_timestamp(seconds: float) -> str:
    """MM:SS, or HH:MM:SS once past the first hour. Floors, never negative."""
    if seconds is None or math.isnan(seconds):
        seconds = 0.0
    total = max(0, int(math.floor(seconds)))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def screen_summary(inference: str) -> str:
    """Collapse a screen inference into one line for the prompt."""
    return " ".join(inference.split())


def _sort_key(entry: TimelineEntry) -> tuple:
    if isinstance(entry, TranscriptEntry):
        return (entry.timestamp, _KIND_ORDER[entry.kind], entry.speaker_id, entry.text)
    return (entry.timestamp, _KIND_ORDER[entry.kind], entry.window_title, entry.inference)


def build_timeline(
    transcript_segments: Iterable[AttributedTranscriptSegment],
    screen_events: Iterable[ScreenContextEvent],
) -> list[TimelineEntry]:
    entries: list[TimelineEntry] = []

    for seg in transcript_segments:
        text = seg.text.strip()
        if not text:
            continue
        entries.append(TranscriptEntry(
            timestamp=max(0.0, seg.start),
            speaker_id=seg.speaker_id,
            text=text,
        ))

    for event in screen_events:
        if not event.inference.strip():
            continue
        entries.append(ScreenEntry(
            timestamp=max(0.0, event.timestamp),
            window_title=event.window_title,
            inference=event.inference,
        ))

    # Content in the key makes the order independent of input order.
    entries.sort(key=_sort_key)
    return entries


def render_timeline(entries: Iterable[TimelineEntry]) -> str:
    lines: list[str] = []
    for entry in entries:
        stamp = format_timestamp(entry.timestamp)
        if isinstance(entry, TranscriptEntry):
            lines.append(f"[{stamp}] Speaker {entry.speaker_id + 1}: {entry.text}")
        else:
            summary = screen_summary(entry.inference)
            if not summary:
                continue
            lines.append(f"[{stamp}] Screen context - {summary}")
    return "\n".join(lines)
