"""
Recording session endpoints.

A browser records locally and pushes chunks; the host microphone records on
the machine running the service. Either way the session lives in the
process's registry until it is saved or discarded.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from voice_journal.database import get_db
from voice_journal.middleware.jwt import get_current_user
from voice_journal.models.user import User
from voice_journal.schemas.entry import EntryResponse
from voice_journal.schemas.recording import (
    RecordingSaveRequest,
    RecordingSaveResponse,
    RecordingStartRequest,
    RecordingStatusResponse,
)
from voice_journal.services.microphone import MicrophoneCaptureSource
from voice_journal.services.pipeline import pipeline
from voice_journal.services.recording import (
    CaptureConstraints,
    CaptureSource,
    RecordingRegistry,
    RecordingSession,
    StreamedCaptureSource,
)
from voice_journal.services.user_settings import settings_store
from voice_journal.utils.logger import get_logger

logger = get_logger("recordings")
router = APIRouter()


def get_registry(request: Request) -> RecordingRegistry:
    return request.app.state.recordings


def _status(session: RecordingSession) -> RecordingStatusResponse:
    return RecordingStatusResponse(
        id=session.id,
        state=session.state.value,
        source=session.source.kind,
        mime_type=session.mime_type,
        elapsed_seconds=session.elapsed_seconds,
        duration=session.duration,
        size_bytes=session.size_bytes,
        error=session.error,
        started_at=session.started_at
    )


def _build_source(body: RecordingStartRequest) -> CaptureSource:
    if body.source == "microphone":
        return MicrophoneCaptureSource()
    return StreamedCaptureSource(mime_type=body.mime_type, reported_error=body.capture_error)


@router.post(
    "/recordings",
    response_model=RecordingStatusResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start recording",
    responses={
        403: {"description": "Microphone permission denied"},
        404: {"description": "No microphone found"},
        415: {"description": "Recording format not supported"}
    }
)
async def start_recording(
    body: RecordingStartRequest,
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> RecordingStatusResponse:
    """
    Acquire a capture source and start the recording timer.

    Any earlier session of the same user is released first unless it is still being saved.
    """
    prefs = settings_store.load(current_user.id)
    constraints = CaptureConstraints.for_quality(prefs.high_quality_audio)

    session = await registry.start(current_user.id, _build_source(body), constraints)
    return _status(session)


@router.get(
    "/recordings/{recording_id}",
    response_model=RecordingStatusResponse,
    summary="Recording status"
)
async def get_recording(
    recording_id: str,
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> RecordingStatusResponse:
    return _status(registry.get(current_user.id, recording_id))


@router.post(
    "/recordings/{recording_id}/chunks",
    response_model=RecordingStatusResponse,
    summary="Append audio chunk",
    description="Raw request body is appended to the recording"
)
async def append_chunk(
    recording_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> RecordingStatusResponse:
    session = registry.get(current_user.id, recording_id)
    session.append_chunk(await request.body())
    return _status(session)


@router.post(
    "/recordings/{recording_id}/stop",
    response_model=RecordingStatusResponse,
    summary="Stop recording"
)
async def stop_recording(
    recording_id: str,
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> RecordingStatusResponse:
    session = registry.get(current_user.id, recording_id)
    await session.stop()
    return _status(session)


@router.delete(
    "/recordings/{recording_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard recording"
)
async def discard_recording(
    recording_id: str,
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> None:
    registry.discard(current_user.id, recording_id)


@router.post(
    "/recordings/{recording_id}/save",
    response_model=RecordingSaveResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save recording",
    description="Upload, transcribe and persist a finalized recording",
    responses={
        400: {"description": "Recording is empty"},
        409: {"description": "Recording is not finalized or already being saved"},
        502: {"description": "Upload failed; the recording is kept for a retry"},
        500: {"description": "Entry could not be persisted"}
    }
)
async def save_recording(
    recording_id: str,
    body: Optional[RecordingSaveRequest] = None,
    accept_language: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: RecordingRegistry = Depends(get_registry)
) -> RecordingSaveResponse:
    body = body or RecordingSaveRequest()
    session = registry.get(current_user.id, recording_id)
    language = pipeline.resolve_language(current_user.id, body.language, body.locale or accept_language)

    entry = await pipeline.save_session(
        db,
        registry,
        session,
        title=body.title,
        language=language
    )

    return RecordingSaveResponse(
        entry=EntryResponse.model_validate(entry),
        language=language
    )
