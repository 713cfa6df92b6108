"""SherpaTranscriptionAdapter — offline ASR with token timestamps.

Splits audio into sub-chunks that fit the encoder's attention window (~100s max),
creates a stream per sub-chunk, then batch-decodes all streams in one call.
Token timestamps from each sub-chunk are offset-corrected and merged, then grouped
into sentence-like segments based on silence gaps.

Speaker attribution happens later in the pipeline; both this adapter and the
diarization adapter report seconds-from-start, so segments align by overlap.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile

from domain.errors import PipelineCancelled, TranscriptionFailed
from domain.models import CancellationToken, TranscriptSegment, TranscriptionResult
from ports.transcription import TranscriptionPort

logger = logging.getLogger(__name__)

REQUIRED_FILES = ["encoder.int8.onnx", "decoder.int8.onnx", "joiner.int8.onnx", "tokens.txt"]

DEFAULT_MODEL_DIR = "/models/sherpa-onnx"

# Max duration per sub-chunk (seconds). Parakeet TDT's self-attention supports
# ~1250 frames at 12.5 fps = 100s.
MAX_CHUNK_SECONDS = 80

# Silence gap (seconds) between tokens that starts a new segment.
SEGMENT_SILENCE_THRESHOLD = 0.25

# Long segments span speaker turns and get attributed to the wrong speaker.
MAX_SEGMENT_DURATION = 6.0

SAMPLE_RATE = 16000


def required_model_paths(model_dir: str) -> list[tuple[str, str]]:
    return [(f, os.path.join(model_dir, f)) for f in REQUIRED_FILES]


def group_tokens_into_segments(
    tokens: list[str],
    timestamps: list[float],
    audio_duration: float,
) -> list[TranscriptSegment]:
    """Group tokens into segments by detecting silence gaps between them.

    A gap above SEGMENT_SILENCE_THRESHOLD, or a segment longer than
    MAX_SEGMENT_DURATION, starts a new segment.
    """
    if not tokens:
        return []

    segments: list[TranscriptSegment] = []
    current_tokens: list[str] = [tokens[0]]
    current_start: float = timestamps[0]
    prev_timestamp: float = timestamps[0]

    for i in range(1, len(tokens)):
        gap = timestamps[i] - prev_timestamp
        segment_duration = timestamps[i] - current_start
        if gap > SEGMENT_SILENCE_THRESHOLD or segment_duration > MAX_SEGMENT_DURATION:
            text = "".join(current_tokens).strip()
            if text:
                segments.append(TranscriptSegment(
                    start=current_start,
                    end=prev_timestamp + 0.1,
                    text=text,
                ))
            current_tokens = [tokens[i]]
            current_start = timestamps[i]
        else:
            current_tokens.append(tokens[i])
        prev_timestamp = timestamps[i]

    text = "".join(current_tokens).strip()
    if text:
        segments.append(TranscriptSegment(
            start=current_start,
            end=min(prev_timestamp + 0.1, audio_duration),
            text=text,
        ))

    return segments


class SherpaTranscriptionAdapter(TranscriptionPort):
    def __init__(self):
        self._model_dir = DEFAULT_MODEL_DIR
        self._recognizer = None
        self._ready = False

    def load(self, model_id: str = DEFAULT_MODEL_DIR, device: str = "cpu") -> None:
        """Load ASR model."""
        import sherpa_onnx

        self._model_dir = model_id
        missing = [name for name, path in required_model_paths(self._model_dir) if not os.path.exists(path)]
        if missing:
            raise FileNotFoundError(f"Missing model files in {self._model_dir}: {missing}")

        logger.info(f"Loading Sherpa-ONNX ASR model (provider={device})...")
        self._recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
            encoder=os.path.join(self._model_dir, "encoder.int8.onnx"),
            decoder=os.path.join(self._model_dir, "decoder.int8.onnx"),
            joiner=os.path.join(self._model_dir, "joiner.int8.onnx"),
            tokens=os.path.join(self._model_dir, "tokens.txt"),
            model_type="nemo_transducer",
            provider=device,
            num_threads=4,
        )
        self._ready = True
        logger.info(f"Sherpa transcription adapter ready: {self._model_dir}")

    def transcribe(
        self,
        audio_path: Path,
        cancellation: Optional[CancellationToken] = None,
    ) -> TranscriptionResult:
        """Sub-chunk audio → create streams → batch decode → merge tokens."""
        if not self._ready:
            raise TranscriptionFailed(debug_detail="Sherpa adapter not loaded")

        try:
            audio, sample_rate = soundfile.read(str(audio_path), dtype="float32")
        except (OSError, RuntimeError) as e:
            raise TranscriptionFailed(debug_detail=f"could not read {audio_path}: {e}") from e

        if len(audio.shape) > 1:
            audio = audio.mean(axis=1)

        duration = len(audio) / sample_rate
        logger.info(f"Audio loaded: {duration:.2f}s @ {sample_rate}Hz")

        if sample_rate != SAMPLE_RATE:
            logger.warning(f"Audio is {sample_rate}Hz, expected {SAMPLE_RATE}Hz")
            target_len = int(len(audio) * SAMPLE_RATE / sample_rate)
            indices = np.linspace(0, len(audio) - 1, target_len)
            audio = np.interp(indices, np.arange(len(audio)), audio).astype(np.float32)
            sample_rate = SAMPLE_RATE

        chunk_samples = MAX_CHUNK_SECONDS * sample_rate
        num_chunks = max(1, int(np.ceil(len(audio) / chunk_samples)))

        streams = []
        chunk_offsets = []
        for i in range(num_chunks):
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            start_sample = i * chunk_samples
            end_sample = min((i + 1) * chunk_samples, len(audio))
            stream = self._recognizer.create_stream()
            stream.accept_waveform(sample_rate, audio[start_sample:end_sample])
            streams.append(stream)
            chunk_offsets.append(start_sample / sample_rate)

        logger.info(f"Created {num_chunks} streams ({MAX_CHUNK_SECONDS}s sub-chunks)")

        try:
            self._recognizer.decode_streams(streams)
        except PipelineCancelled:
            raise
        except Exception as e:
            logger.error(f"Sherpa transcription error: {e}", exc_info=True)
            raise TranscriptionFailed(debug_detail=str(e)) from e

        all_tokens = []
        all_timestamps = []
        all_text_parts = []
        for stream, offset in zip(streams, chunk_offsets):
            result = stream.result
            if result.tokens:
                all_tokens.extend(result.tokens)
                all_timestamps.extend(t + offset for t in result.timestamps)
            if result.text.strip():
                all_text_parts.append(result.text.strip())

        full_text = " ".join(all_text_parts)
        if not full_text:
            logger.warning("No speech detected")
            return TranscriptionResult(text="", segments=[])

        segments = group_tokens_into_segments(all_tokens, all_timestamps, duration)
        logger.info(f"Grouped into {len(segments)} segments, {len(full_text)} characters")
        return TranscriptionResult(text=full_text, segments=segments)

    def is_loaded(self) -> bool:
        return self._ready
