"""Speaker attribution: overlay diarization turns onto transcript segments.

Each transcript segment takes the speaker with the largest temporal overlap.
If no segment overlaps any speaker turn at all, the diarization is treated
as unaligned and an empty list is returned; callers then render the meeting
as a single speaker. One stray segment cannot trigger this, but a meeting
whose diarization timestamps are offset entirely will.
"""

import logging
from typing import Optional

from domain.models import AttributedTranscriptSegment, SpeakerSegment, TranscriptSegment

logger = logging.getLogger(__name__)


def overlap_seconds(start_a: float, end_a: float, start_b: float, end_b: float) -> float:
    return max(0.0, min(end_a, end_b) - max(start_a, start_b))


def _best_speaker(
    segment: TranscriptSegment, speakers: list[SpeakerSegment]
) -> tuple[Optional[int], float]:
    best_id: Optional[int] = None
    best_overlap = 0.0
    for spk in speakers:
        overlap = overlap_seconds(segment.start, segment.end, spk.start, spk.end)
        # Strictly greater: ties keep the first speaker found.
        if overlap > best_overlap:
            best_overlap = overlap
            best_id = spk.speaker_id
    return best_id, best_overlap


def merge_adjacent(segments: list[AttributedTranscriptSegment]) -> list[AttributedTranscriptSegment]:
    """Join consecutive segments that share a speaker."""
    merged: list[AttributedTranscriptSegment] = []
    for seg in segments:
        if merged and merged[-1].speaker_id == seg.speaker_id:
            last = merged[-1]
            merged[-1] = AttributedTranscriptSegment(
                start=last.start,
                end=seg.end,
                speaker_id=last.speaker_id,
                text=f"{last.text} {seg.text}".strip(),
            )
        else:
            merged.append(seg)
    return merged


def attribute_speakers(
    transcript_segments: list[TranscriptSegment],
    speaker_segments: list[SpeakerSegment],
) -> list[AttributedTranscriptSegment]:
    """Assign a speaker to every transcript segment, or return [] if unreliable."""
    if not transcript_segments or not speaker_segments:
        return []

    attributed: list[AttributedTranscriptSegment] = []
    last_speaker: Optional[int] = None
    has_overlap = False

    for segment in transcript_segments:
        best_id, best_overlap = _best_speaker(segment, speaker_segments)
        if best_overlap > 0:
            has_overlap = True

        if best_id is not None:
            speaker_id = best_id
        elif last_speaker is not None:
            speaker_id = last_speaker
        else:
            speaker_id = speaker_segments[0].speaker_id
        last_speaker = speaker_id

        text = segment.text.strip()
        if not text:
            continue

        attributed.append(AttributedTranscriptSegment(
            start=segment.start,
            end=segment.end,
            speaker_id=speaker_id,
            text=text,
        ))

    if not has_overlap:
        logger.info("No transcript segment overlaps a speaker turn; skipping attribution")
        return []

    return merge_adjacent(attributed)


def single_speaker_segments(transcript_segments: list[TranscriptSegment]) -> list[AttributedTranscriptSegment]:
    """Treat every segment as speaker 0; used when attribution is unavailable."""
    return [
        AttributedTranscriptSegment(start=seg.start, end=seg.end, speaker_id=0, text=seg.text)
        for seg in transcript_segments
    ]
