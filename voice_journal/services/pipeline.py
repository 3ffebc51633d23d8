"""
Recording pipeline: upload -> transcription -> persistence, strictly in order.

Also hosts the entry operations that touch both storage and the database
(transcript regeneration, deletion).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from voice_journal.config import settings
from voice_journal.exceptions import (
    AudioNotFound,
    ConfirmationRequired,
    EntryNotFound,
    JournalError,
    PersistenceFailed,
    RecordingEmpty,
)
from voice_journal.models.entry import Entry
from voice_journal.schemas.entry import EntryCreate
from voice_journal.services.database import DatabaseService, db_service
from voice_journal.services.recording import RecordingRegistry, RecordingSession
from voice_journal.services.storage import StorageService, storage_service
from voice_journal.services.transcription_stage import TranscriptionStage, transcription_stage
from voice_journal.services.user_settings import LocalSettingsStore, settings_store
from voice_journal.utils.language import resolve_language
from voice_journal.utils.logger import get_logger

logger = get_logger("pipeline")


def default_title(now: Optional[datetime] = None) -> str:
    """
    Title given to entries saved without one.

    Example:
        >>> default_title(datetime(2024, 3, 5, 9, 7))
        'Founder Log - 3/5/2024 09:07'
    """
    now = now or datetime.now()
    return f"{settings.ENTRY_TITLE_PREFIX} - {now.month}/{now.day}/{now.year} {now:%H:%M}"


@dataclass
class DeleteResult:
    entry_id: UUID
    storage_error: Optional[str] = None


class RecordingPipeline:
    """Runs the stages for one recording at a time per call."""

    def __init__(
        self,
        storage: StorageService = storage_service,
        transcription: TranscriptionStage = transcription_stage,
        database: DatabaseService = db_service,
        user_settings: LocalSettingsStore = settings_store
    ):
        self.storage = storage
        self.transcription = transcription
        self.database = database
        self.user_settings = user_settings

    def resolve_language(
        self,
        owner_id: UUID,
        explicit: Optional[str] = None,
        locale: Optional[str] = None
    ) -> str:
        """Pick the transcription language from the request and the owner's saved settings."""
        prefs = self.user_settings.load(owner_id)
        return resolve_language(
            explicit=explicit,
            default_language=prefs.default_language,
            auto_detect=prefs.auto_detect_language,
            locale=locale,
            fallback=settings.DEFAULT_TRANSCRIPTION_LANGUAGE
        )

    async def save(
        self,
        db: AsyncSession,
        owner_id: UUID,
        blob: bytes,
        content_type: Optional[str],
        duration: Optional[int],
        title: Optional[str] = None,
        language: Optional[str] = None
    ) -> Entry:
        """
        Upload, transcribe and persist one recording.

        Args:
            db: Database session
            owner_id: Authenticated user
            blob: Finalized recording
            content_type: MIME type of the blob
            duration: Whole seconds measured by the recording timer
            title: Entry title; generated when omitted
            language: Resolved transcription language

        Returns:
            The persisted Entry

        Raises:
            RecordingEmpty: If the blob has no bytes
            UploadFailed: If storage rejects the blob; nothing is persisted
            PersistenceFailed: If the row cannot be written; the object stays in storage
        """
        if not blob:
            raise RecordingEmpty()

        filename = self.storage.generate_filename(content_type)
        path = await self.storage.upload(owner_id, blob, filename, content_type)

        transcript = await self.transcription.transcribe(
            blob,
            filename=filename,
            content_type=content_type,
            language=language
        )

        entry_data = EntryCreate(
            user_id=owner_id,
            title=title or default_title(),
            original_audio_path=path,
            processed_audio_path=path,
            transcription=transcript,
            duration=duration
        )

        try:
            entry = await self.database.create_entry(db, entry_data)
        except PersistenceFailed:
            logger.warning(
                "Entry not persisted, uploaded object left in storage",
                owner_id=str(owner_id),
                path=path
            )
            raise

        logger.info(
            "Recording saved",
            entry_id=str(entry.id),
            owner_id=str(owner_id),
            path=path,
            duration=duration,
            language=language
        )
        return entry

    async def save_session(
        self,
        db: AsyncSession,
        registry: RecordingRegistry,
        session: RecordingSession,
        title: Optional[str] = None,
        language: Optional[str] = None
    ) -> Entry:
        """
        Save a finalized recording session.

        On failure the session returns to finalized with its blob kept.
        """
        blob = session.begin_upload()
        try:
            entry = await self.save(
                db,
                session.owner_id,
                blob,
                content_type=session.mime_type,
                duration=session.duration,
                title=title,
                language=language
            )
        except JournalError as e:
            session.fail_upload(e.detail)
            raise
        except Exception:
            session.fail_upload("Failed to save recording. Please try again.")
            raise

        session.complete_upload()
        registry.remove(session)
        return entry

    async def get_entry(self, db: AsyncSession, owner_id: UUID, entry_id: UUID) -> Entry:
        """
        Raises:
            EntryNotFound: If missing or owned by someone else
        """
        entry = await self.database.get_entry_by_id(db, entry_id, owner_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    async def regenerate_transcript(
        self,
        db: AsyncSession,
        owner_id: UUID,
        entry_id: UUID,
        confirm: bool,
        language: Optional[str] = None
    ) -> Entry:
        """
        Transcribe an entry's audio again and overwrite its transcript.

        Raises:
            ConfirmationRequired: Unless ``confirm`` is true
            EntryNotFound: If the entry does not exist for this owner
            AudioNotFound: If the stored audio is gone
        """
        if not confirm:
            raise ConfirmationRequired("Transcript regeneration")

        entry = await self.get_entry(db, owner_id, entry_id)
        path = entry.original_audio_path

        try:
            blob = await self.storage.read(owner_id, path)
        except FileNotFoundError as e:
            raise AudioNotFound(path) from e

        transcript = await self.transcription.transcribe(
            blob,
            filename=path.rsplit("/", 1)[-1],
            language=language
        )
        return await self.database.update_transcription(db, entry, transcript)

    async def delete_entry(self, db: AsyncSession, owner_id: UUID, entry_id: UUID) -> DeleteResult:
        """
        Delete an entry's storage objects, then its row.

        Storage failures are logged and reported but never block the row delete.

        Raises:
            EntryNotFound: If the entry does not exist for this owner
            PersistenceFailed: If the row cannot be deleted
        """
        entry = await self.get_entry(db, owner_id, entry_id)
        paths = entry.storage_paths

        storage_error = await self.storage.remove(owner_id, paths)
        if storage_error:
            logger.warning(
                "Failed to delete audio from storage",
                entry_id=str(entry_id),
                paths=paths,
                error=storage_error
            )

        await self.database.delete_entry_row(db, entry)
        return DeleteResult(entry_id=entry_id, storage_error=storage_error)


# Global pipeline instance
pipeline = RecordingPipeline()
