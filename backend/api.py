"""HTTP surface for the meeting pipeline.

Endpoints are sync so FastAPI runs them in its threadpool; a pipeline run
blocks one worker thread until the note is written.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config import (
    Config,
    create_ml_adapters,
    create_model_manager,
    create_progress_adapter,
    create_summarization_adapter,
    create_vault_adapters,
    get_config,
)
from domain.errors import MinuteError, PipelineBusy, PipelineCancelled
from mappers import request_to_context, result_to_dto
from models import ErrorResponse, HealthResponse, ProcessMeetingRequest, ProcessMeetingResponse
from use_cases.process_meeting import MeetingPipelineCoordinator

logger = logging.getLogger(__name__)


def load_models(transcription, diarization, cfg: Config) -> None:
    """Load engines up front; a failure leaves the service up but unable to run."""
    try:
        transcription.load(model_id=cfg.model_dir)
    except (FileNotFoundError, ImportError, RuntimeError) as e:
        logger.error(f"Transcription model not loaded: {e}")
    if diarization is not None:
        try:
            diarization.load(access_token=cfg.get_hf_token())
        except (ImportError, RuntimeError, OSError) as e:
            logger.error(f"Diarization model not loaded: {e}")


def build_coordinator(cfg: Config, transcription, diarization) -> MeetingPipelineCoordinator:
    vault_access, vault_writer = create_vault_adapters(cfg)
    return MeetingPipelineCoordinator(
        transcription=transcription,
        diarization=diarization,
        summarization=create_summarization_adapter(cfg),
        model_manager=create_model_manager(cfg),
        vault_access=vault_access,
        vault_writer=vault_writer,
        progress=create_progress_adapter(),
        temp_root=Path(cfg.temp_dir),
    )


def _error_response(status_code: int, err: MinuteError) -> JSONResponse:
    body = ErrorResponse(error_code=err.code.value, message=err.message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(
    coordinator: Optional[MeetingPipelineCoordinator] = None,
    cfg: Optional[Config] = None,
) -> FastAPI:
    cfg = cfg or get_config()
    Path(cfg.temp_dir).mkdir(parents=True, exist_ok=True)
    engines = None
    if coordinator is None:
        engines = create_ml_adapters(cfg)
        coordinator = build_coordinator(cfg, *engines)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engines is not None:
            load_models(*engines, cfg)
        yield

    app = FastAPI(title="Minute", lifespan=lifespan)
    app.state.coordinator = coordinator

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="ok", busy=coordinator.is_busy)

    @app.get("/v1/config")
    def show_config():
        return cfg.as_dict()

    @app.post(
        "/v1/meetings",
        response_model=ProcessMeetingResponse,
        responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def process_meeting(req: ProcessMeetingRequest):
        if coordinator.is_busy:
            return _error_response(409, PipelineBusy())

        context = request_to_context(
            req,
            folders=cfg.vault_folders(),
            temp_dir=cfg.temp_dir,
            save_audio=cfg.save_audio,
            save_transcript=cfg.save_transcript,
        )
        logger.info(f"Processing meeting: audio={context.audio_temp_path} events={len(context.screen_context_events)}")
        try:
            result = coordinator.execute(context)
        except PipelineBusy as e:
            return _error_response(409, e)
        except PipelineCancelled:
            return ProcessMeetingResponse(status="cancelled")
        except MinuteError as e:
            return _error_response(500, e)
        return result_to_dto(result)

    @app.post("/v1/meetings/cancel")
    def cancel_meeting():
        cancelled = coordinator.cancel()
        return {"cancelled": cancelled}

    return app
