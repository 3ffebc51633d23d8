"""
Pydantic schemas for recording session endpoints.
"""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from voice_journal.schemas.entry import EntryResponse


class RecordingStartRequest(BaseModel):
    """Start a recording session."""
    source: Literal["stream", "microphone"] = Field(
        default="stream",
        description="'stream' for chunks pushed by the client, 'microphone' for the host's input device"
    )
    mime_type: Optional[str] = Field(
        default=None,
        description="Container format of streamed chunks; the configured recording format when omitted"
    )
    capture_error: Optional[str] = Field(
        default=None,
        description="DOMException name when the client failed to acquire its microphone"
    )


class RecordingStatusResponse(BaseModel):
    """Current state of a recording session."""
    id: str
    state: str
    source: str
    mime_type: str
    elapsed_seconds: int
    duration: Optional[int] = None
    size_bytes: int
    error: Optional[str] = None
    started_at: Optional[datetime] = None


class RecordingSaveRequest(BaseModel):
    """Save a finalized recording through the upload, transcription and persistence stages."""
    title: Optional[str] = Field(default=None, max_length=255)
    language: Optional[str] = Field(
        default=None,
        description="Explicit 3-letter language code; overrides settings and locale"
    )
    locale: Optional[str] = Field(
        default=None,
        description="Client locale (e.g. 'de-DE'); defaults to the Accept-Language header"
    )


class RecordingSaveResponse(BaseModel):
    """Result of a successful save."""
    entry: EntryResponse
    language: str
    message: str = "Recording saved successfully"
