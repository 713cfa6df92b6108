"""In-memory fakes for the pipeline ports."""

import json
import threading
import wave
from datetime import datetime
from pathlib import Path
from typing import Optional

from domain.models import (
    CancellationToken,
    ModelDownloadProgress,
    PipelineProgress,
    SpeakerSegment,
    TranscriptionResult,
    TranscriptSegment,
)
from ports.diarization import DiarizationPort
from ports.model_manager import ModelManagerPort
from ports.progress import ProgressPort
from ports.summarization import SummarizationPort
from ports.transcription import TranscriptionPort

WEEKLY_SYNC = {
    "title": "Weekly Sync",
    "date": "2024-03-05",
    "summary": "Discussed Q2 roadmap.",
    "decisions": ["Ship v2"],
    "action_items": [{"owner": "Ana", "task": "Draft spec"}],
    "open_questions": [],
    "key_points": ["Budget flat"],
}


def write_contract_wav(path: Path, seconds: float = 0.5, rate: int = 16000, channels: int = 1) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    frames = int(seconds * rate)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(b"\x00\x00" * frames * channels)
    return path


class FakeTranscription(TranscriptionPort):
    def __init__(self, result: Optional[TranscriptionResult] = None, error: Optional[Exception] = None):
        self.result = result or TranscriptionResult(
            text="Hello team. Let's ship v2.",
            segments=[
                TranscriptSegment(start=0.0, end=2.0, text="Hello team."),
                TranscriptSegment(start=2.5, end=4.0, text="Let's ship v2."),
            ],
        )
        self.error = error
        self.calls = 0

    def load(self, model_id: str, device: str = "cpu") -> None:
        pass

    def transcribe(self, audio_path: Path, cancellation: Optional[CancellationToken] = None) -> TranscriptionResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result

    def is_loaded(self) -> bool:
        return True


class FakeDiarization(DiarizationPort):
    def __init__(self, segments: Optional[list[SpeakerSegment]] = None, error: Optional[Exception] = None):
        self.segments = segments or []
        self.error = error

    def load(self, **kwargs) -> None:
        pass

    def diarize(self, audio_path: Path, cancellation: Optional[CancellationToken] = None) -> list[SpeakerSegment]:
        if self.error is not None:
            raise self.error
        return self.segments

    def is_loaded(self) -> bool:
        return True


class FakeSummarization(SummarizationPort):
    def __init__(self, output: Optional[str] = None, repaired: str = "still not json"):
        self.output = output if output is not None else json.dumps(WEEKLY_SYNC)
        self.repaired = repaired
        self.prompts: list[str] = []
        self.repair_inputs: list[str] = []

    def summarize(
        self,
        timeline_text: str,
        meeting_date: datetime,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        self.prompts.append(timeline_text)
        return self.output

    def repair_json(self, raw_output: str, cancellation: Optional[CancellationToken] = None) -> str:
        self.repair_inputs.append(raw_output)
        return self.repaired


class BlockingSummarization(FakeSummarization):
    """Holds summarize() until released so tests can observe a run in flight."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def summarize(self, timeline_text, meeting_date, cancellation=None) -> str:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().summarize(timeline_text, meeting_date, cancellation)


class FakeModelManager(ModelManagerPort):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error

    def ensure_models_present(self, progress=None, cancellation=None) -> None:
        if self.error is not None:
            raise self.error
        if progress is not None:
            progress(ModelDownloadProgress(fraction_completed=0.5, label="half"))
            progress(ModelDownloadProgress(fraction_completed=1.0, label="done"))

    def missing_models(self) -> list[str]:
        return []


class RecordingProgress(ProgressPort):
    def __init__(self):
        self.updates: list[PipelineProgress] = []

    def report(self, run_id: str, update: PipelineProgress) -> None:
        self.updates.append(update)
