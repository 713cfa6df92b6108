"""ProgressPort — abstract interface for reporting pipeline progress."""

from abc import ABC, abstractmethod

from domain.models import PipelineProgress


class ProgressPort(ABC):
    @abstractmethod
    def report(self, run_id: str, update: PipelineProgress) -> None:
        """Report progress. Stages: downloading_models, transcribing, summarizing, writing."""
