"""Error kinds surfaced by the meeting pipeline.

User-facing messages stay short. Raw collaborator output (exit codes, stderr)
goes into debug_detail, which is only ever logged.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_001"
    SUMMARIZATION_FAILED = "SUMMARIZATION_001"
    JSON_INVALID = "SUMMARIZATION_002"
    MODEL_MISSING = "MODEL_001"
    MODEL_CHECKSUM_MISMATCH = "MODEL_002"
    MODEL_DOWNLOAD_FAILED = "MODEL_003"
    VAULT_UNAVAILABLE = "VAULT_001"
    VAULT_WRITE_FAILED = "VAULT_002"
    PIPELINE_BUSY = "PIPELINE_001"
    CANCELLED = "PIPELINE_002"


class MinuteError(Exception):
    code: ErrorCode
    message: str = "Meeting processing failed."

    def __init__(self, debug_detail: Optional[str] = None, message: Optional[str] = None):
        if message is not None:
            self.message = message
        self.debug_detail = debug_detail or ""
        super().__init__(self.message)

    @property
    def debug_summary(self) -> str:
        if self.debug_detail:
            return f"{self.code.value} {self.message}\n{self.debug_detail}"
        return f"{self.code.value} {self.message}"


class TranscriptionFailed(MinuteError):
    code = ErrorCode.TRANSCRIPTION_FAILED
    message = "Transcription failed."


class SummarizationFailed(MinuteError):
    code = ErrorCode.SUMMARIZATION_FAILED
    message = "Summarization failed."


class JSONInvalid(MinuteError):
    code = ErrorCode.JSON_INVALID
    message = "Failed to structure the meeting note."


class ModelMissing(MinuteError):
    code = ErrorCode.MODEL_MISSING
    message = "Required model files are missing."


class ModelChecksumMismatch(MinuteError):
    code = ErrorCode.MODEL_CHECKSUM_MISMATCH
    message = "Downloaded model file failed verification."


class ModelDownloadFailed(MinuteError):
    code = ErrorCode.MODEL_DOWNLOAD_FAILED
    message = "Failed to download required models."


class VaultUnavailable(MinuteError):
    code = ErrorCode.VAULT_UNAVAILABLE
    message = "The selected vault is not available."


class VaultWriteFailed(MinuteError):
    code = ErrorCode.VAULT_WRITE_FAILED
    message = "Failed to write meeting files to the vault."


class PipelineBusy(MinuteError):
    code = ErrorCode.PIPELINE_BUSY
    message = "A meeting is already being processed."


class PipelineCancelled(MinuteError):
    code = ErrorCode.CANCELLED
    message = "Processing was cancelled."
