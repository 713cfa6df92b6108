"""DiarizationPort — abstract interface for speaker diarization."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from domain.models import CancellationToken, SpeakerSegment


class DiarizationPort(ABC):
    @abstractmethod
    def load(self, **kwargs) -> None:
        """Load the diarization pipeline."""

    @abstractmethod
    def diarize(
        self,
        audio_path: Path,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[SpeakerSegment]:
        """Run speaker diarization. May raise anything; callers treat failure as no speakers."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the diarization pipeline is loaded and ready."""
