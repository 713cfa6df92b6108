from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict


class ActionItem(BaseModel):
    """A single follow-up task extracted from the meeting."""
    model_config = ConfigDict(strict=True, frozen=True)

    owner: str
    task: str


class MeetingExtraction(BaseModel):
    """Fixed schema the summarization model must produce.

    Decoding is strict: every key must be present with the right JSON type.
    Unknown keys (e.g. action_items[].due) are ignored.
    """
    model_config = ConfigDict(strict=True, frozen=True)

    title: str
    date: str
    summary: str
    decisions: List[str]
    action_items: List[ActionItem]
    open_questions: List[str]
    key_points: List[str]


class ScreenContextEventIn(BaseModel):
    timestamp: float
    window_title: str = ""
    inference: str = ""


class ProcessMeetingRequest(BaseModel):
    """Request body for POST /v1/meetings."""
    audio_path: str
    started_at: datetime
    stopped_at: Optional[datetime] = None
    working_directory: Optional[str] = None
    save_audio: Optional[bool] = None
    save_transcript: Optional[bool] = None
    screen_context_events: List[ScreenContextEventIn] = []


class ProcessMeetingResponse(BaseModel):
    status: str = "done"
    note_path: Optional[str] = None
    audio_path: Optional[str] = None


class ErrorResponse(BaseModel):
    status: str = "failed"
    error_code: str
    message: str


class HealthResponse(BaseModel):
    status: str
    busy: bool
    config: Dict[str, Any] = {}
