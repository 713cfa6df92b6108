"""TranscriptionPort — abstract interface for ASR engines."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from domain.models import CancellationToken, TranscriptionResult


class TranscriptionPort(ABC):
    @abstractmethod
    def load(self, model_id: str, device: str = "cpu") -> None:
        """Load the ASR model onto the specified device."""

    @abstractmethod
    def transcribe(
        self,
        audio_path: Path,
        cancellation: Optional[CancellationToken] = None,
    ) -> TranscriptionResult:
        """Transcribe a contract WAV file. Raises TranscriptionFailed."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the model has been loaded and is ready for inference."""
