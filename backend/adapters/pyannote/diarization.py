"""PyannoteDiarizationAdapter — wraps pyannote speaker-diarization 3.1."""

import os
import re
import logging
from pathlib import Path
from typing import Optional

from domain.models import CancellationToken, SpeakerSegment
from ports.diarization import DiarizationPort

logger = logging.getLogger(__name__)

_TRAILING_NUMBER_RE = re.compile(r"(\d+)\D*$")


class SpeakerIdMapper:
    """Stable mapping from diarizer labels to dense integer ids.

    "SPEAKER_03" maps to 3. Labels without a number get the next free
    counter value in first-seen order.
    """

    def __init__(self):
        self._ids: dict[str, int] = {}
        self._next_id = 0

    def map(self, label: str) -> int:
        if label in self._ids:
            return self._ids[label]
        match = _TRAILING_NUMBER_RE.search(label)
        if match:
            assigned = int(match.group(1))
        else:
            assigned = self._next_id
            self._next_id += 1
        self._ids[label] = assigned
        return assigned


def to_speaker_segments(turns: list[tuple[float, float, str]]) -> list[SpeakerSegment]:
    mapper = SpeakerIdMapper()
    segments = [
        SpeakerSegment(start=start, end=end, speaker_id=mapper.map(str(label)))
        for start, end, label in turns
    ]
    segments.sort(key=lambda s: s.start)
    return segments


class PyannoteDiarizationAdapter(DiarizationPort):
    def __init__(self):
        self._pipeline = None

    def load(self, access_token: Optional[str] = None, device: str = "cuda", **kwargs) -> None:
        import torch

        try:
            from pyannote.audio import Pipeline

            token = access_token or os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
            if not token:
                logger.error("No HuggingFace token available. Diarization disabled.")
                return

            self._pipeline = Pipeline.from_pretrained(
                "pyannote/speaker-diarization-3.1",
                token=token,
            )
            actual_device = device if device == "cuda" and torch.cuda.is_available() else "cpu"
            self._pipeline.to(torch.device(actual_device))
            logger.info(f"Diarization pipeline initialized on {actual_device}")

        except ImportError:
            logger.error("pyannote.audio not installed")

    def diarize(
        self,
        audio_path: Path,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[SpeakerSegment]:
        if self._pipeline is None:
            raise RuntimeError("Diarization pipeline not loaded")

        if cancellation is not None:
            cancellation.raise_if_cancelled()

        logger.info("Running speaker diarization (Pyannote)")
        output = self._pipeline(str(audio_path))
        # pyannote 4 wraps the annotation; 3.x returns it directly.
        annotation = getattr(output, "speaker_diarization", output)
        turns = [
            (turn.start, turn.end, speaker)
            for turn, _, speaker in annotation.itertracks(yield_label=True)
        ]
        segments = to_speaker_segments(turns)
        logger.info(f"Found {len({s.speaker_id for s in segments})} speakers")
        return segments

    def is_loaded(self) -> bool:
        return self._pipeline is not None
