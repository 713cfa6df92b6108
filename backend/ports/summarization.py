"""SummarizationPort — abstract interface for the meeting summarization model."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from domain.models import CancellationToken


class SummarizationPort(ABC):
    @abstractmethod
    def summarize(
        self,
        timeline_text: str,
        meeting_date: datetime,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        """Return raw model output that should contain one extraction JSON object."""

    @abstractmethod
    def repair_json(
        self,
        raw_output: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        """Ask the model to rewrite invalid output so it matches the schema."""
