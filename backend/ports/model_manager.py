"""ModelManagerPort — abstract interface for ensuring local model files."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from domain.models import CancellationToken, ModelDownloadProgress

ModelProgressCallback = Callable[[ModelDownloadProgress], None]


class ModelManagerPort(ABC):
    @abstractmethod
    def ensure_models_present(
        self,
        progress: Optional[ModelProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Make every required model available. Raises ModelMissing,
        ModelChecksumMismatch or ModelDownloadFailed."""

    @abstractmethod
    def missing_models(self) -> list[str]:
        """Names of required model files that are not ready."""
