"""
Unit tests for the recording pipeline.
Storage and transcription run for real against temporary paths; the
database is the in-memory SQLite session unless a failure is simulated.
"""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from voice_journal.exceptions import (
    AudioNotFound,
    ConfirmationRequired,
    EntryNotFound,
    InvalidRecordingState,
    PersistenceFailed,
    RecordingEmpty,
    UploadFailed,
)
from voice_journal.schemas.user_settings import UserSettings
from voice_journal.services.database import db_service
from voice_journal.services.pipeline import RecordingPipeline, default_title
from voice_journal.services.recording import (
    RecordingRegistry,
    RecordingState,
    StreamedCaptureSource,
)
from voice_journal.services.storage import storage_service
from voice_journal.services.transcription_stage import TranscriptionStage
from voice_journal.services.user_settings import settings_store

FIXED_NOW = datetime(2024, 3, 5, 9, 7, 30)
OWNER_ID = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")
OTHER_ID = uuid.UUID("6f1c2b7e-3d4a-4c5b-9e8f-0a1b2c3d4e5f")


@pytest.fixture
def stage():
    return TranscriptionStage(clock=lambda: FIXED_NOW)


@pytest.fixture
def recording_pipeline(stage):
    return RecordingPipeline(storage=storage_service, transcription=stage)


def test_default_title():
    assert default_title(datetime(2024, 3, 5, 9, 7)) == "Founder Log - 3/5/2024 09:07"
    assert default_title(datetime(2024, 12, 25, 18, 30)) == "Founder Log - 12/25/2024 18:30"


class TestResolveLanguage:

    def test_uses_locale_when_auto_detect_on(self, recording_pipeline):
        assert recording_pipeline.resolve_language(OWNER_ID, locale="es-ES") == "spa"

    def test_uses_saved_language_when_auto_detect_off(self, recording_pipeline):
        settings_store.save(OWNER_ID, UserSettings(default_language="ita", auto_detect_language=False))

        assert recording_pipeline.resolve_language(OWNER_ID, locale="es-ES") == "ita"

    def test_other_users_settings_ignored(self, recording_pipeline):
        settings_store.save(OTHER_ID, UserSettings(default_language="deu", auto_detect_language=False))

        assert recording_pipeline.resolve_language(OWNER_ID, locale="es-ES") == "spa"
        assert recording_pipeline.resolve_language(OTHER_ID, locale="es-ES") == "deu"

    def test_explicit_language_wins(self, recording_pipeline):
        assert recording_pipeline.resolve_language(OWNER_ID, "kor", "es-ES") == "kor"


class TestSave:

    @pytest.mark.asyncio
    async def test_save_uploads_transcribes_and_persists(self, recording_pipeline, db_session, test_user):
        blob = b"x" * 48_000

        entry = await recording_pipeline.save(
            db_session,
            test_user.id,
            blob,
            content_type="audio/webm;codecs=opus",
            duration=12,
            language="eng"
        )

        assert entry.duration == 12
        assert entry.user_id == test_user.id
        assert entry.original_audio_path == entry.processed_audio_path
        assert entry.original_audio_path.startswith(f"{test_user.id}/recording_")
        assert entry.original_audio_path.endswith(".webm")
        assert entry.transcription == (
            "Transcription placeholder generated on 2024-03-05 09:07:30 - Size: 48KB"
        )
        assert entry.title.startswith("Founder Log - ")
        assert storage_service.exists(entry.original_audio_path)

    @pytest.mark.asyncio
    async def test_save_keeps_given_title(self, recording_pipeline, db_session, test_user):
        entry = await recording_pipeline.save(
            db_session, test_user.id, b"audio", "audio/webm", 3, title="Pitch practice"
        )
        assert entry.title == "Pitch practice"

    @pytest.mark.asyncio
    async def test_empty_blob_rejected_before_upload(self, stage):
        storage = MagicMock()
        storage.upload = AsyncMock()
        recording_pipeline = RecordingPipeline(storage=storage, transcription=stage)

        with pytest.raises(RecordingEmpty):
            await recording_pipeline.save(MagicMock(), "owner", b"", "audio/webm", 0)

        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure_skips_transcription_and_persistence(self):
        storage = MagicMock()
        storage.generate_filename.return_value = "recording_1.webm"
        storage.upload = AsyncMock(side_effect=UploadFailed("disk full"))
        transcription = MagicMock()
        transcription.transcribe = AsyncMock()
        database = MagicMock()
        database.create_entry = AsyncMock()
        recording_pipeline = RecordingPipeline(storage=storage, transcription=transcription, database=database)

        with pytest.raises(UploadFailed):
            await recording_pipeline.save(MagicMock(), "owner", b"audio", "audio/webm", 5)

        transcription.transcribe.assert_not_called()
        database.create_entry.assert_not_called()

    @pytest.mark.asyncio
    async def test_persistence_failure_leaves_uploaded_object(self, stage, test_user):
        database = MagicMock()
        database.create_entry = AsyncMock(side_effect=PersistenceFailed("constraint violation"))
        recording_pipeline = RecordingPipeline(storage=storage_service, transcription=stage, database=database)

        with pytest.raises(PersistenceFailed):
            await recording_pipeline.save(MagicMock(), test_user.id, b"audio", "audio/webm", 5)

        owner_dir = storage_service.bucket_path / str(test_user.id)
        assert len(list(owner_dir.glob("recording_*.webm"))) == 1


class TestSaveSession:

    async def _finalized(self, registry, owner_id, chunks=(b"abc",)):
        session = await registry.start(owner_id, StreamedCaptureSource())
        for chunk in chunks:
            session.append_chunk(chunk)
        await session.stop()
        return session

    @pytest.mark.asyncio
    async def test_successful_save_removes_session(self, recording_pipeline, db_session, test_user):
        registry = RecordingRegistry()
        session = await self._finalized(registry, test_user.id)

        entry = await recording_pipeline.save_session(db_session, registry, session, language="eng")

        assert entry.original_audio_path.endswith(".webm")
        assert session.state == RecordingState.IDLE
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_failed_save_keeps_blob(self, stage, test_user):
        storage = MagicMock()
        storage.generate_filename.return_value = "recording_1.webm"
        storage.upload = AsyncMock(side_effect=UploadFailed("network down"))
        recording_pipeline = RecordingPipeline(storage=storage, transcription=stage)
        registry = RecordingRegistry()
        session = await self._finalized(registry, test_user.id)

        with pytest.raises(UploadFailed):
            await recording_pipeline.save_session(MagicMock(), registry, session)

        assert session.state == RecordingState.FINALIZED
        assert session.blob == b"abc"
        assert "network down" in session.error
        assert registry.get(test_user.id, session.id) is session
        registry.close_all()

    @pytest.mark.asyncio
    async def test_save_before_stop_rejected(self, recording_pipeline, test_user):
        registry = RecordingRegistry()
        session = await registry.start(test_user.id, StreamedCaptureSource())

        with pytest.raises(InvalidRecordingState):
            await recording_pipeline.save_session(MagicMock(), registry, session)
        registry.close_all()


class TestEntryOperations:

    @pytest.mark.asyncio
    async def test_get_entry_of_other_user_not_found(self, recording_pipeline, db_session, sample_entry, second_user):
        with pytest.raises(EntryNotFound):
            await recording_pipeline.get_entry(db_session, second_user.id, sample_entry.id)

    @pytest.mark.asyncio
    async def test_regenerate_requires_confirmation(self, recording_pipeline, db_session, sample_entry, test_user):
        with pytest.raises(ConfirmationRequired):
            await recording_pipeline.regenerate_transcript(db_session, test_user.id, sample_entry.id, confirm=False)

        await db_session.refresh(sample_entry)
        assert sample_entry.transcription == "Original transcript"

    @pytest.mark.asyncio
    async def test_regenerate_overwrites_transcript(self, recording_pipeline, db_session, sample_entry, test_user):
        stale = datetime(2020, 1, 1, tzinfo=timezone.utc)
        sample_entry.updated_at = stale
        await db_session.commit()
        audio_path = sample_entry.original_audio_path

        entry = await recording_pipeline.regenerate_transcript(
            db_session, test_user.id, sample_entry.id, confirm=True
        )

        assert entry.transcription.startswith("Transcription placeholder generated on 2024-03-05 09:07:30")
        assert entry.duration == 12
        assert entry.original_audio_path == audio_path
        assert entry.updated_at.replace(tzinfo=None) > stale.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_regenerate_with_missing_audio(self, recording_pipeline, db_session, sample_entry, test_user):
        storage_service.local_path(sample_entry.original_audio_path).unlink()

        with pytest.raises(AudioNotFound):
            await recording_pipeline.regenerate_transcript(db_session, test_user.id, sample_entry.id, confirm=True)

    @pytest.mark.asyncio
    async def test_delete_removes_object_and_row(self, recording_pipeline, db_session, sample_entry, test_user):
        path = sample_entry.original_audio_path

        result = await recording_pipeline.delete_entry(db_session, test_user.id, sample_entry.id)

        assert result.storage_error is None
        assert not storage_service.exists(path)
        assert await db_service.get_entry_by_id(db_session, sample_entry.id) is None

    @pytest.mark.asyncio
    async def test_delete_succeeds_when_storage_fails(self, recording_pipeline, db_session, sample_entry, test_user):
        storage_service.local_path(sample_entry.original_audio_path).unlink()

        result = await recording_pipeline.delete_entry(db_session, test_user.id, sample_entry.id)

        assert result.storage_error is not None
        assert await db_service.get_entry_by_id(db_session, sample_entry.id) is None

    @pytest.mark.asyncio
    async def test_delete_reports_failure_when_row_delete_fails(self, stage, db_session, sample_entry, test_user):
        database = MagicMock()
        database.get_entry_by_id = AsyncMock(return_value=sample_entry)
        database.delete_entry_row = AsyncMock(side_effect=PersistenceFailed("database is locked"))
        recording_pipeline = RecordingPipeline(storage=storage_service, transcription=stage, database=database)

        with pytest.raises(PersistenceFailed):
            await recording_pipeline.delete_entry(db_session, test_user.id, sample_entry.id)

        database.delete_entry_row.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_removes_both_paths(self, recording_pipeline, db_session, sample_entry, test_user):
        original = sample_entry.original_audio_path
        processed = await storage_service.upload(test_user.id, b"processed", "processed_1.webm", "audio/webm")
        sample_entry.processed_audio_path = processed
        await db_session.commit()

        result = await recording_pipeline.delete_entry(db_session, test_user.id, sample_entry.id)

        assert result.storage_error is None
        assert not storage_service.exists(processed)
        assert not storage_service.exists(original)
