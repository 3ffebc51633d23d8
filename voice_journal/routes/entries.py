"""
Entry endpoints: one-shot save, listing, transcript regeneration, playback
and deletion.
"""
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from voice_journal.database import get_db
from voice_journal.middleware.jwt import get_current_user
from voice_journal.models.user import User
from voice_journal.schemas.entry import (
    DeleteResponse,
    EntryListResponse,
    EntryResponse,
    PlaybackResponse,
    TranscriptionRegenerateRequest,
)
from voice_journal.services.database import db_service
from voice_journal.services.pipeline import pipeline
from voice_journal.services.playback import playback_resolver
from voice_journal.utils.logger import get_logger

logger = get_logger("entries")
router = APIRouter()


@router.post(
    "/entries",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a finished recording",
    description="Upload, transcribe and persist a blob recorded and timed by the client",
    responses={
        400: {"description": "Recording is empty"},
        502: {"description": "Upload failed"},
        500: {"description": "Entry could not be persisted"}
    }
)
async def create_entry(
    file: UploadFile = File(..., description="Finalized recording"),
    duration: Annotated[Optional[int], Form(ge=0, description="Whole seconds measured while recording")] = None,
    title: Annotated[Optional[str], Form(max_length=255)] = None,
    language: Annotated[Optional[str], Form()] = None,
    locale: Annotated[Optional[str], Form()] = None,
    accept_language: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> EntryResponse:
    blob = await file.read()
    resolved = pipeline.resolve_language(current_user.id, language, locale or accept_language)

    logger.info(
        "One-shot save requested",
        user_id=str(current_user.id),
        size=len(blob),
        content_type=file.content_type,
        duration=duration
    )

    entry = await pipeline.save(
        db,
        current_user.id,
        blob,
        content_type=file.content_type,
        duration=duration,
        title=title,
        language=resolved
    )
    return EntryResponse.model_validate(entry)


@router.get(
    "/entries",
    response_model=EntryListResponse,
    summary="List entries",
    description="Entries of the authenticated user, newest first"
)
async def list_entries(
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> EntryListResponse:
    entries = await db_service.get_entries_by_user(db, current_user.id, limit=limit, offset=offset)
    total = await db_service.count_entries_by_user(db, current_user.id)

    return EntryListResponse(
        entries=[EntryResponse.model_validate(entry) for entry in entries],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get(
    "/entries/{entry_id}",
    response_model=EntryResponse,
    summary="Get entry",
    responses={404: {"description": "Entry not found or not authorized"}}
)
async def get_entry(
    entry_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> EntryResponse:
    """
    Returns 404 for both missing entries and entries of other users.
    """
    entry = await pipeline.get_entry(db, current_user.id, entry_id)
    return EntryResponse.model_validate(entry)


@router.post(
    "/entries/{entry_id}/transcription",
    response_model=EntryResponse,
    summary="Regenerate transcript",
    description="Transcribe the stored audio again and overwrite the transcript. Requires confirm=true.",
    responses={
        404: {"description": "Entry or its audio not found"},
        409: {"description": "Confirmation missing"}
    }
)
async def regenerate_transcription(
    entry_id: UUID,
    body: TranscriptionRegenerateRequest,
    accept_language: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> EntryResponse:
    language = pipeline.resolve_language(current_user.id, body.language, accept_language) if body.confirm else None

    entry = await pipeline.regenerate_transcript(
        db,
        current_user.id,
        entry_id,
        confirm=body.confirm,
        language=language
    )
    return EntryResponse.model_validate(entry)


@router.get(
    "/entries/{entry_id}/playback",
    response_model=PlaybackResponse,
    summary="Playback source",
    description="Fresh signed URL and the duration to display"
)
async def get_playback(
    entry_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> PlaybackResponse:
    resolved = await playback_resolver.resolve(db, current_user.id, entry_id)
    return PlaybackResponse(
        entry_id=resolved.entry_id,
        url=resolved.url,
        expires_at=resolved.expires_at,
        stored_duration=resolved.stored_duration,
        reported_duration=resolved.reported_duration,
        displayed_duration=resolved.displayed_duration,
        duration_source=resolved.duration_source
    )


@router.delete(
    "/entries/{entry_id}",
    response_model=DeleteResponse,
    summary="Delete entry",
    description="Delete the entry's audio objects, then its row",
    responses={
        404: {"description": "Entry not found or not authorized"},
        500: {"description": "Entry row could not be deleted"}
    }
)
async def delete_entry(
    entry_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> DeleteResponse:
    result = await pipeline.delete_entry(db, current_user.id, entry_id)
    return DeleteResponse(
        message="Entry deleted successfully",
        deleted_id=result.entry_id,
        storage_cleanup_failed=result.storage_error is not None
    )
