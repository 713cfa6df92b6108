"""MeetingPipelineCoordinator — turns one recorded meeting into vault files.

Accepts all ports via dependency injection. Stages run strictly in order:

    downloading_models -> transcribing -> summarizing -> writing

Only one run may be active per coordinator. Cancellation is cooperative: the
token is checked before every stage and handed to each collaborator.
Temporary staging files are removed whether the run succeeds, fails or is
cancelled, but only when they live under the temp root.
"""

import logging
import shutil
import tempfile
import threading
import uuid
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from adapters.local.vault_writer import is_descendant
from audio_contract import is_contract_wav
from domain.errors import JSONInvalid, MinuteError, PipelineBusy, PipelineCancelled, VaultWriteFailed
from domain.models import (
    AttributedTranscriptSegment,
    CancellationToken,
    MeetingPaths,
    ModelDownloadProgress,
    PipelineContext,
    PipelineProgress,
    PipelineResult,
    PipelineStage,
    SpeakerSegment,
    TranscriptionResult,
)
from extraction_validation import fallback_extraction, validate_extraction
from file_contract import MeetingFileContract, iso_date, parse_iso_date
from json_extraction import extract_first_json_object
from models import MeetingExtraction
from ports.diarization import DiarizationPort
from ports.model_manager import ModelManagerPort
from ports.progress import ProgressPort
from ports.summarization import SummarizationPort
from ports.transcription import TranscriptionPort
from ports.vault import VaultAccessPort, VaultWriterPort
from rendering import render_note, render_transcript
from speaker_attribution import attribute_speakers, single_speaker_segments
from timeline import build_timeline, render_timeline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineProgress], None]

MAX_RESERVATION_ATTEMPTS = 1000

TRANSCRIBING_START = 0.1
SUMMARIZING_START = 0.5
WRITING_START = 0.85


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MeetingPipelineCoordinator:
    def __init__(
        self,
        transcription: TranscriptionPort,
        diarization: Optional[DiarizationPort],
        summarization: SummarizationPort,
        model_manager: ModelManagerPort,
        vault_access: VaultAccessPort,
        vault_writer: VaultWriterPort,
        progress: Optional[ProgressPort] = None,
        clock: Callable[[], datetime] = _utc_now,
        temp_root: Optional[Path] = None,
        calendar_tz: Optional[tzinfo] = None,
    ):
        self._transcription = transcription
        self._diarization = diarization
        self._summarization = summarization
        self._model_manager = model_manager
        self._vault_access = vault_access
        self._vault_writer = vault_writer
        self._progress = progress
        self._clock = clock
        self._temp_root = temp_root
        self._calendar_tz = calendar_tz

        self._run_lock = threading.Lock()
        self._active_token: Optional[CancellationToken] = None

    @property
    def is_busy(self) -> bool:
        return self._run_lock.locked()

    def cancel(self) -> bool:
        """Request cancellation of the active run. Returns False if idle."""
        token = self._active_token
        if token is None:
            return False
        token.cancel()
        return True

    def execute(
        self,
        context: PipelineContext,
        on_progress: Optional[ProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> PipelineResult:
        """Run the full pipeline. Raises PipelineBusy if a run is in flight."""
        if not self._run_lock.acquire(blocking=False):
            raise PipelineBusy()

        token = cancellation or CancellationToken()
        self._active_token = token
        run_id = uuid.uuid4().hex[:12]
        try:
            return self._run(run_id, context, token, on_progress)
        finally:
            self._active_token = None
            self._run_lock.release()

    def _run(
        self,
        run_id: str,
        context: PipelineContext,
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
    ) -> PipelineResult:
        def emit(stage: PipelineStage, fraction: float, extraction: Optional[MeetingExtraction] = None) -> None:
            update = PipelineProgress(stage=stage, fraction_completed=fraction, extraction=extraction)
            if on_progress is not None:
                on_progress(update)
            if self._progress is not None:
                self._progress.report(run_id, update)

        def on_model_progress(update: ModelDownloadProgress) -> None:
            clamped = min(max(update.fraction_completed, 0.0), 1.0)
            emit(PipelineStage.DOWNLOADING_MODELS, clamped * TRANSCRIBING_START)

        try:
            self._prepare_working_directory(context)

            # 1. Models
            token.raise_if_cancelled()
            emit(PipelineStage.DOWNLOADING_MODELS, 0.0)
            self._model_manager.ensure_models_present(progress=on_model_progress, cancellation=token)

            # 2. Transcription + optional diarization
            token.raise_if_cancelled()
            emit(PipelineStage.TRANSCRIBING, TRANSCRIBING_START)
            transcription = self._transcription.transcribe(context.audio_temp_path, cancellation=token)
            logger.info(f"[{run_id}] Transcribed {len(transcription.segments)} segments")

            speaker_segments = self._diarize_if_possible(run_id, context, token)
            attributed = attribute_speakers(transcription.segments, speaker_segments)
            timeline_segments = attributed or single_speaker_segments(transcription.segments)
            timeline_text = render_timeline(
                build_timeline(timeline_segments, context.screen_context_events)
            )

            # 3. Summarization + decode/repair/fallback
            token.raise_if_cancelled()
            emit(PipelineStage.SUMMARIZING, SUMMARIZING_START)
            raw_output = self._summarization.summarize(timeline_text, context.started_at, cancellation=token)
            extraction = self.decode_or_repair(raw_output, context.started_at, token)

            # 4. Writing
            token.raise_if_cancelled()
            emit(PipelineStage.WRITING, WRITING_START, extraction)
            result = self._write_outputs(context, extraction, transcription, attributed)
            logger.info(f"[{run_id}] Meeting note written: {result.note_path}")
            return result

        except PipelineCancelled:
            logger.info(f"[{run_id}] Pipeline cancelled")
            raise
        except MinuteError as e:
            logger.error(f"[{run_id}] Pipeline failed: {e.debug_summary}")
            raise
        except Exception as e:
            logger.error(f"[{run_id}] Pipeline failed: {e!r}", exc_info=True)
            raise
        finally:
            self._cleanup_temporary_artifacts(context)

    def _diarize_if_possible(
        self, run_id: str, context: PipelineContext, token: CancellationToken
    ) -> list[SpeakerSegment]:
        if self._diarization is None or not self._diarization.is_loaded():
            logger.info(f"[{run_id}] Diarization unavailable; using a single speaker")
            return []
        try:
            segments = self._diarization.diarize(context.audio_temp_path, cancellation=token)
        except PipelineCancelled:
            raise
        except Exception as e:
            # Losing speaker labels is acceptable; losing the meeting is not.
            logger.error(f"[{run_id}] Diarization failed: {e!r}")
            return []
        logger.info(f"[{run_id}] Diarization produced {len(segments)} speaker turns")
        return segments

    # --- Extraction recovery -------------------------------------------

    @staticmethod
    def decode_strict(raw_output: str) -> MeetingExtraction:
        """Decode the first JSON object in `raw_output`. Raises JSONInvalid."""
        extracted = extract_first_json_object(raw_output.strip())
        if extracted is None:
            raise JSONInvalid(debug_detail="no JSON object found in model output")
        if extracted.has_text_outside:
            logger.debug("Model output had text around the JSON object; ignoring it")
        try:
            return MeetingExtraction.model_validate_json(extracted.json_object)
        except ValidationError as e:
            raise JSONInvalid(debug_detail=str(e)) from e

    def decode_or_repair(
        self,
        raw_output: str,
        recording_date: Optional[datetime],
        token: Optional[CancellationToken] = None,
    ) -> MeetingExtraction:
        """Strict decode, then one repair pass, then the fallback extraction."""
        try:
            decoded = self.decode_strict(raw_output)
        except JSONInvalid as first_error:
            logger.info(f"Extraction JSON invalid; attempting repair ({first_error.debug_detail[:200]})")
            if token is not None:
                token.raise_if_cancelled()
            repaired = self._summarization.repair_json(raw_output, cancellation=token)
            try:
                decoded = self.decode_strict(repaired)
            except JSONInvalid:
                if recording_date is None:
                    raise JSONInvalid(debug_detail="repair failed and no recording date for fallback")
                logger.error("Extraction still invalid after repair; proceeding with fallback")
                return fallback_extraction(recording_date)

        if recording_date is None:
            raise JSONInvalid(debug_detail="no recording date to validate extraction against")
        return validate_extraction(decoded, recording_date)

    # --- Vault output ----------------------------------------------------

    def _reserve_paths(
        self,
        vault_root: Path,
        context: PipelineContext,
        title: str,
        save_audio: bool,
    ) -> MeetingPaths:
        """Find the first collision-free path set: "T", "T (2)", "T (3)", ..."""
        contract = MeetingFileContract(context.vault_folders)
        for attempt in range(1, MAX_RESERVATION_ATTEMPTS + 1):
            paths = contract.paths(context.started_at, title, attempt=attempt, tz=self._calendar_tz)
            candidates = [paths.note]
            if save_audio:
                candidates.append(paths.audio)
            if context.save_transcript:
                candidates.append(paths.transcript)
            if not any(self._vault_writer.exists(vault_root / rel) for rel in candidates):
                if attempt > 1:
                    logger.info(f"Note name taken; using suffix ({attempt})")
                return paths
        raise VaultWriteFailed(debug_detail=f"no free filename for {title!r} after {MAX_RESERVATION_ATTEMPTS} attempts")

    def _write_outputs(
        self,
        context: PipelineContext,
        extraction: MeetingExtraction,
        transcription: TranscriptionResult,
        attributed: list[AttributedTranscriptSegment],
    ) -> PipelineResult:
        meeting_date = parse_iso_date(extraction.date) or context.started_at
        meeting_date_iso = iso_date(meeting_date)

        save_audio = context.save_audio and is_contract_wav(context.audio_temp_path)
        if context.save_audio and not save_audio:
            logger.warning("Staged audio does not meet the WAV contract; not saving audio")

        with self._vault_access.scoped() as vault_root:
            paths = self._reserve_paths(vault_root, context, extraction.title, save_audio)
            audio_rel = paths.audio if save_audio else None
            transcript_rel = paths.transcript if context.save_transcript else None

            note_markdown = render_note(
                extraction,
                audio_path=audio_rel,
                transcript_path=transcript_rel,
                processed_at=self._clock(),
            )

            if transcript_rel is not None:
                transcript_markdown = render_transcript(
                    title=extraction.title,
                    date_iso=meeting_date_iso,
                    transcript=transcription.text,
                    segments=attributed,
                )
                self._vault_writer.write_atomically(
                    transcript_markdown.encode("utf-8"), vault_root / transcript_rel, vault_root
                )

            note_path = vault_root / paths.note
            self._vault_writer.write_atomically(note_markdown.encode("utf-8"), note_path, vault_root)

            audio_path = None
            if audio_rel is not None:
                audio_path = vault_root / audio_rel
                self._vault_writer.copy_atomically(context.audio_temp_path, audio_path, vault_root)

            return PipelineResult(note_path=note_path, audio_path=audio_path)

    # --- Cleanup ---------------------------------------------------------

    def _resolved_temp_root(self) -> Path:
        return Path(self._temp_root or tempfile.gettempdir())

    def _prepare_working_directory(self, context: PipelineContext) -> None:
        """Create the run's working directory when it lives under the temp root."""
        if is_descendant(context.working_directory, self._resolved_temp_root()):
            context.working_directory.mkdir(parents=True, exist_ok=True)

    def _cleanup_temporary_artifacts(self, context: PipelineContext) -> None:
        temp_root = self._resolved_temp_root()

        audio_dir = context.audio_temp_path.parent
        if is_descendant(audio_dir, temp_root):
            self._remove_tree(audio_dir)
        elif is_descendant(context.audio_temp_path, temp_root):
            self._remove_file(context.audio_temp_path)

        if is_descendant(context.working_directory, temp_root):
            self._remove_tree(context.working_directory)

    @staticmethod
    def _remove_tree(path: Path) -> None:
        try:
            if path.exists():
                shutil.rmtree(path)
        except OSError as e:
            logger.warning(f"Cleanup error: {e}")

    @staticmethod
    def _remove_file(path: Path) -> None:
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logger.warning(f"Cleanup error: {e}")
