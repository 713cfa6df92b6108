"""Sherpa-ONNX adapter for offline transcription."""

from .transcription import SherpaTranscriptionAdapter

__all__ = ["SherpaTranscriptionAdapter"]
