"""
Pydantic schemas for journal entry request/response validation.
"""
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class EntryCreate(BaseModel):
    """Schema for creating a new entry. Requires a completed upload."""
    user_id: UUID
    title: str
    original_audio_path: str = Field(..., min_length=1)
    processed_audio_path: Optional[str] = None
    transcription: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)


class EntryResponse(BaseModel):
    """Schema for entry API responses."""
    id: UUID
    user_id: UUID
    title: str
    original_audio_path: str
    processed_audio_path: Optional[str] = None
    transcription: Optional[str] = None
    duration: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EntryListResponse(BaseModel):
    """Paginated list response for entries."""
    entries: list[EntryResponse]
    total: int
    limit: int
    offset: int


class TranscriptionRegenerateRequest(BaseModel):
    """Request body for regenerating an entry's transcript."""
    confirm: bool = Field(
        default=False,
        description="Must be true: regeneration overwrites the existing transcript"
    )
    language: Optional[str] = Field(
        default=None,
        description="Explicit 3-letter language code; overrides settings and locale"
    )


class PlaybackResponse(BaseModel):
    """Signed playback source with the reconciled display duration."""
    entry_id: UUID
    url: str
    expires_at: datetime
    stored_duration: Optional[int] = None
    reported_duration: Optional[float] = Field(
        default=None,
        description="Duration the audio container reports about itself (untrusted)"
    )
    displayed_duration: Optional[float] = None
    duration_source: Optional[str] = Field(
        default=None,
        description="'media' when the container reported a usable value, 'stored' for the recorded timer value"
    )


class DeleteResponse(BaseModel):
    """Schema for delete endpoint response."""
    message: str
    deleted_id: UUID
    storage_cleanup_failed: bool = False


class HealthResponse(BaseModel):
    """Schema for health check endpoint response."""
    status: str
    database: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    detail: str
    code: str | None = None
    timestamp: str | None = None
