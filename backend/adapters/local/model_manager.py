"""LocalModelManager — verifies model files that were provisioned on disk.

Downloads are handled outside this service (container entrypoint or manual
install). This adapter checks presence and, when an expected digest is
configured, the SHA-256 of each file.
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Optional

from domain.errors import ModelChecksumMismatch, ModelMissing
from domain.models import CancellationToken, ModelDownloadProgress
from ports.model_manager import ModelManagerPort, ModelProgressCallback

logger = logging.getLogger(__name__)

HASH_CHUNK_BYTES = 8 * 1024 * 1024


@dataclass(frozen=True)
class RequiredModel:
    name: str
    path: str
    sha256: Optional[str] = None


def sha256_of(path: str, cancellation: Optional[CancellationToken] = None) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_BYTES), b""):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            digest.update(chunk)
    return digest.hexdigest()


class LocalModelManager(ModelManagerPort):
    def __init__(self, models: list[RequiredModel]):
        self._models = models

    def missing_models(self) -> list[str]:
        return [m.name for m in self._models if not os.path.isfile(m.path)]

    def ensure_models_present(
        self,
        progress: Optional[ModelProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        missing = self.missing_models()
        if missing:
            logger.error(f"Missing model files: {missing}")
            raise ModelMissing(debug_detail=f"missing: {', '.join(missing)}")

        total = len(self._models)
        for i, model in enumerate(self._models):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            if model.sha256:
                actual = sha256_of(model.path, cancellation)
                if actual.lower() != model.sha256.lower():
                    logger.error(f"Checksum mismatch for {model.name}: {actual}")
                    raise ModelChecksumMismatch(
                        debug_detail=f"{model.name}: expected {model.sha256}, got {actual}"
                    )
            size_mb = os.path.getsize(model.path) / (1024 * 1024)
            logger.info(f"  model: {model.name} ({size_mb:.1f} MB)")
            if progress is not None:
                progress(ModelDownloadProgress(
                    fraction_completed=(i + 1) / total,
                    label=f"Verified {model.name}",
                ))

        if total == 0 and progress is not None:
            progress(ModelDownloadProgress(fraction_completed=1.0, label="No models required"))
