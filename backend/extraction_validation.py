"""Field-level normalization of decoded MeetingExtraction records.

Also builds the fallback extraction used when model output cannot be decoded
even after one repair pass.
"""

import re
from datetime import datetime

from file_contract import ISO_DATE_RE, UNTITLED, iso_date
from models import ActionItem, MeetingExtraction

FALLBACK_SUMMARY = "Failed to structure output; see audio for details."

_MULTI_SPACE_RE = re.compile(r" {2,}")


def normalize_paragraph(value: str) -> str:
    """Normalize line endings to LF and trim; inner newlines are kept."""
    return value.replace("\r\n", "\n").replace("\r", "\n").strip()


def normalize_inline(value: str) -> str:
    """Collapse to a single trimmed line."""
    text = normalize_paragraph(value).replace("\n", " ").replace("\t", " ")
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def _normalize_items(items: list[str]) -> list[str]:
    normalized = (normalize_inline(item) for item in items)
    return [item for item in normalized if item]


def validate_extraction(extraction: MeetingExtraction, recording_date: datetime) -> MeetingExtraction:
    """Return a normalized copy of `extraction`. Idempotent."""
    title = normalize_inline(extraction.title) or UNTITLED

    date = normalize_inline(extraction.date)
    if not ISO_DATE_RE.match(date):
        date = iso_date(recording_date)

    action_items = []
    for item in extraction.action_items:
        owner = normalize_inline(item.owner)
        task = normalize_inline(item.task)
        if owner or task:
            action_items.append(ActionItem(owner=owner, task=task))

    return MeetingExtraction(
        title=title,
        date=date,
        summary=normalize_paragraph(extraction.summary),
        decisions=_normalize_items(extraction.decisions),
        action_items=action_items,
        open_questions=_normalize_items(extraction.open_questions),
        key_points=_normalize_items(extraction.key_points),
    )


def fallback_extraction(recording_date: datetime) -> MeetingExtraction:
    return MeetingExtraction(
        title=UNTITLED,
        date=iso_date(recording_date),
        summary=FALLBACK_SUMMARY,
        decisions=[],
        action_items=[],
        open_questions=[],
        key_points=[],
    )
