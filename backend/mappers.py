"""Domain <-> DTO mappers.

Converts between the HTTP request/response models (Pydantic) and the
pipeline's domain dataclasses. Mapping never touches the filesystem.
"""

import uuid
from pathlib import Path

from domain.models import PipelineContext, PipelineResult, ScreenContextEvent, VaultFolders
from models import ProcessMeetingRequest, ProcessMeetingResponse, ScreenContextEventIn


def event_from_dto(dto: ScreenContextEventIn) -> ScreenContextEvent:
    return ScreenContextEvent(
        timestamp=dto.timestamp,
        window_title=dto.window_title,
        inference=dto.inference,
    )


def request_to_context(
    req: ProcessMeetingRequest,
    folders: VaultFolders,
    temp_dir: str,
    save_audio: bool = True,
    save_transcript: bool = True,
) -> PipelineContext:
    """Build a PipelineContext, falling back to configured defaults.

    A missing working directory gets a fresh path under `temp_dir`; the
    coordinator creates it once the run owns the pipeline.
    """
    working_directory = (
        Path(req.working_directory)
        if req.working_directory
        else Path(temp_dir) / f"run-{uuid.uuid4().hex[:12]}"
    )
    return PipelineContext(
        vault_folders=folders,
        audio_temp_path=Path(req.audio_path),
        started_at=req.started_at,
        stopped_at=req.stopped_at or req.started_at,
        working_directory=working_directory,
        save_audio=save_audio if req.save_audio is None else req.save_audio,
        save_transcript=save_transcript if req.save_transcript is None else req.save_transcript,
        screen_context_events=tuple(event_from_dto(e) for e in req.screen_context_events),
    )


def result_to_dto(result: PipelineResult) -> ProcessMeetingResponse:
    return ProcessMeetingResponse(
        note_path=str(result.note_path),
        audio_path=str(result.audio_path) if result.audio_path else None,
    )
