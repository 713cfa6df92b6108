"""LogProgressAdapter — reports pipeline progress via logging."""

import logging

from domain.models import PipelineProgress
from ports.progress import ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    def report(self, run_id: str, update: PipelineProgress) -> None:
        msg = f"[{run_id}] {update.stage.value} {update.fraction_completed:.0%}"
        if update.extraction is not None:
            msg += f" — {update.extraction.title}"
        logger.info(msg)
