"""Framework-agnostic domain models for the meeting pipeline.

Processing logic works on these dataclasses only. The pydantic schema used to
decode model output (MeetingExtraction) lives in models.py at the boundary.
"""

import enum
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from domain.errors import PipelineCancelled


@dataclass(frozen=True)
class TranscriptSegment:
    """A single transcribed speech segment, seconds from recording start."""
    start: float
    end: float
    text: str


@dataclass(frozen=True)
class TranscriptionResult:
    """Full transcription output: plain text plus timed segments."""
    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass(frozen=True)
class SpeakerSegment:
    """A speaker turn from the diarization pipeline, with a dense integer id."""
    start: float
    end: float
    speaker_id: int


@dataclass(frozen=True)
class AttributedTranscriptSegment:
    start: float
    end: float
    speaker_id: int
    text: str


@dataclass(frozen=True)
class ScreenContextEvent:
    """Opaque screen annotation captured while recording."""
    timestamp: float
    window_title: str
    inference: str


# Timeline entries are a tagged union: one dataclass per variant.

@dataclass(frozen=True)
class TranscriptEntry:
    timestamp: float
    speaker_id: int
    text: str
    kind: str = "transcript"


@dataclass(frozen=True)
class ScreenEntry:
    timestamp: float
    window_title: str
    inference: str
    kind: str = "screen"


TimelineEntry = Union[TranscriptEntry, ScreenEntry]


@dataclass(frozen=True)
class VaultFolders:
    """Vault-relative roots for each artifact kind."""
    meetings_root: str = "Meetings"
    audio_root: str = "Meetings/_audio"
    transcripts_root: str = "Meetings/_transcripts"


@dataclass(frozen=True)
class MeetingPaths:
    """Vault-relative output paths reserved for one run."""
    note: str
    audio: str
    transcript: str


@dataclass(frozen=True)
class PipelineContext:
    """Per-run configuration, owned by a single pipeline invocation."""
    vault_folders: VaultFolders
    audio_temp_path: Path
    started_at: datetime
    stopped_at: datetime
    working_directory: Path
    save_audio: bool = True
    save_transcript: bool = True
    screen_context_events: tuple[ScreenContextEvent, ...] = ()


@dataclass(frozen=True)
class PipelineResult:
    note_path: Path
    audio_path: Optional[Path] = None


class PipelineStage(str, enum.Enum):
    DOWNLOADING_MODELS = "downloading_models"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    WRITING = "writing"


@dataclass(frozen=True)
class PipelineProgress:
    stage: PipelineStage
    fraction_completed: float
    # Validated MeetingExtraction, attached to the writing update only.
    extraction: Optional[Any] = None


@dataclass(frozen=True)
class ModelDownloadProgress:
    """Fractional progress (0..1) across all required model files."""
    fraction_completed: float
    label: str = ""


class CancellationToken:
    """Cooperative cancellation flag shared between a run and its collaborators."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled()
