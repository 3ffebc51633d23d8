"""
Integration tests for entry endpoints: one-shot save, listing, transcript
regeneration, playback and deletion.
"""
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from voice_journal.config import settings
from voice_journal.services.storage import storage_service


async def _save(client: AsyncClient, blob: bytes, content_type="audio/webm", **form) -> dict:
    response = await client.post(
        "/api/v1/entries",
        files={"file": ("recording.webm", blob, content_type)},
        data={key: str(value) for key, value in form.items()}
    )
    assert response.status_code == 201, response.text
    return response.json()


def _mock_elevenlabs(mock_client_class, text="Closed the seed round today."):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"text": text, "language_code": "eng"}

    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=response)
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = AsyncMock()
    mock_client_class.return_value = mock_client
    return mock_client


class TestSaveEntry:

    @pytest.mark.asyncio
    async def test_save_without_credentials_stores_placeholder(self, authenticated_client: AsyncClient, webm_blob):
        entry = await _save(authenticated_client, webm_blob, duration=12)

        assert entry["duration"] == 12
        assert "placeholder" in entry["transcription"]
        assert "KB" in entry["transcription"]
        assert entry["title"].startswith("Founder Log - ")

        playback = await authenticated_client.get(f"/api/v1/entries/{entry['id']}/playback")

        assert playback.status_code == 200
        data = playback.json()
        assert data["displayed_duration"] == 12
        assert data["duration_source"] == "stored"
        assert data["reported_duration"] is None

    @pytest.mark.asyncio
    async def test_save_with_credentials_transcribes(self, authenticated_client: AsyncClient, webm_blob, monkeypatch):
        monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", "sk_test")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_elevenlabs(mock_client_class)
            entry = await _save(authenticated_client, webm_blob, duration=30, locale="es-MX")

        assert entry["transcription"] == "Closed the seed round today."
        assert mock_client.post.call_args.kwargs["data"]["language_code"] == "spa"

    @pytest.mark.asyncio
    async def test_provider_failure_still_saves(self, authenticated_client: AsyncClient, webm_blob, monkeypatch):
        monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", "sk_test")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_elevenlabs(mock_client_class)
            mock_client.post.return_value.status_code = 500
            mock_client.post.return_value.text = "upstream error"
            entry = await _save(authenticated_client, webm_blob, duration=4)

        assert entry["transcription"].startswith("Transcription failed on ")
        assert "500" in entry["transcription"]

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/v1/entries",
            files={"file": ("recording.webm", b"", "audio/webm")},
            data={"duration": "3"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "RECORDING_EMPTY"

    @pytest.mark.asyncio
    async def test_disallowed_type_creates_no_entry(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/v1/entries",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            data={"duration": "3"}
        )

        assert response.status_code == 502
        assert response.json()["code"] == "UPLOAD_FAILED"

        listing = await authenticated_client.get("/api/v1/entries")
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, authenticated_client: AsyncClient, webm_blob):
        response = await authenticated_client.post(
            "/api/v1/entries",
            files={"file": ("recording.webm", webm_blob, "audio/webm")},
            data={"duration": "-1"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_save_requires_authentication(self, client: AsyncClient, webm_blob):
        response = await client.post(
            "/api/v1/entries",
            files={"file": ("recording.webm", webm_blob, "audio/webm")}
        )

        assert response.status_code == 401


class TestListAndGet:

    @pytest.mark.asyncio
    async def test_list_newest_first(self, authenticated_client: AsyncClient, webm_blob):
        first = await _save(authenticated_client, webm_blob, duration=1, title="First")
        second = await _save(authenticated_client, webm_blob, duration=2, title="Second")

        response = await authenticated_client.get("/api/v1/entries")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        ids = [entry["id"] for entry in data["entries"]]
        assert set(ids) == {first["id"], second["id"]}

    @pytest.mark.asyncio
    async def test_list_pagination(self, authenticated_client: AsyncClient, webm_blob):
        for index in range(3):
            await _save(authenticated_client, webm_blob, duration=index)

        response = await authenticated_client.get("/api/v1/entries", params={"limit": 2, "offset": 2})

        data = response.json()
        assert data["total"] == 3
        assert len(data["entries"]) == 1
        assert data["limit"] == 2
        assert data["offset"] == 2

    @pytest.mark.asyncio
    async def test_get_entry(self, authenticated_client: AsyncClient, sample_entry):
        response = await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}")

        assert response.status_code == 200
        assert response.json()["transcription"] == "Original transcript"

    @pytest.mark.asyncio
    async def test_missing_entry(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"/api/v1/entries/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "ENTRY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_other_users_entries_hidden(self, authenticated_client: AsyncClient, second_client: AsyncClient, sample_entry):
        assert (await second_client.get(f"/api/v1/entries/{sample_entry.id}")).status_code == 404
        assert (await second_client.get(f"/api/v1/entries/{sample_entry.id}/playback")).status_code == 404
        assert (await second_client.delete(f"/api/v1/entries/{sample_entry.id}")).status_code == 404

        listing = await second_client.get("/api/v1/entries")
        assert listing.json()["total"] == 0

        assert (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}")).status_code == 200


class TestRegenerateTranscription:

    @pytest.mark.asyncio
    async def test_requires_confirmation(self, authenticated_client: AsyncClient, sample_entry):
        response = await authenticated_client.post(
            f"/api/v1/entries/{sample_entry.id}/transcription",
            json={}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFIRMATION_REQUIRED"

        entry = await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}")
        assert entry.json()["transcription"] == "Original transcript"

    @pytest.mark.asyncio
    async def test_confirmed_regeneration_overwrites(self, authenticated_client: AsyncClient, sample_entry, monkeypatch):
        monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", "sk_test")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_elevenlabs(mock_client_class, text="Regenerated text")
            response = await authenticated_client.post(
                f"/api/v1/entries/{sample_entry.id}/transcription",
                json={"confirm": True, "language": "fra"}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["transcription"] == "Regenerated text"
        assert data["duration"] == 12
        assert mock_client.post.call_args.kwargs["data"]["language_code"] == "fra"

    @pytest.mark.asyncio
    async def test_missing_audio(self, authenticated_client: AsyncClient, sample_entry):
        storage_service.local_path(sample_entry.original_audio_path).unlink()

        response = await authenticated_client.post(
            f"/api/v1/entries/{sample_entry.id}/transcription",
            json={"confirm": True}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "AUDIO_NOT_FOUND"


class TestPlayback:

    @pytest.mark.asyncio
    async def test_signed_url_serves_audio(self, authenticated_client: AsyncClient, sample_entry, webm_blob):
        playback = (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}/playback")).json()

        assert "/api/v1/storage/objects/" in playback["url"]
        assert playback["stored_duration"] == 12

        path = playback["url"][playback["url"].index("/api/v1/"):]
        response = await authenticated_client.get(path)

        assert response.status_code == 200
        assert response.content == webm_blob
        assert response.headers["accept-ranges"] == "bytes"

    @pytest.mark.asyncio
    async def test_each_request_gets_fresh_url(self, authenticated_client: AsyncClient, sample_entry, monkeypatch):
        monkeypatch.setattr(settings, "SIGNED_URL_TTL_SECONDS", 60)
        first = (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}/playback")).json()

        monkeypatch.setattr(settings, "SIGNED_URL_TTL_SECONDS", 120)
        second = (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}/playback")).json()

        assert first["url"] != second["url"]

    @pytest.mark.asyncio
    async def test_media_reported_duration_wins(self, authenticated_client: AsyncClient, wav_blob):
        entry = await _save(authenticated_client, wav_blob, content_type="audio/wav", duration=99)

        playback = (await authenticated_client.get(f"/api/v1/entries/{entry['id']}/playback")).json()

        assert playback["stored_duration"] == 99
        assert playback["reported_duration"] == pytest.approx(2.0, abs=0.01)
        assert playback["displayed_duration"] == pytest.approx(2.0, abs=0.01)
        assert playback["duration_source"] == "media"

    @pytest.mark.asyncio
    async def test_invalid_token_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/storage/objects/not-a-token")

        assert response.status_code == 403
        assert response.json()["code"] == "SIGNED_URL_INVALID"


class TestDeleteEntry:

    @pytest.mark.asyncio
    async def test_delete_entry(self, authenticated_client: AsyncClient, sample_entry):
        path = sample_entry.original_audio_path

        response = await authenticated_client.delete(f"/api/v1/entries/{sample_entry.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["deleted_id"] == str(sample_entry.id)
        assert data["storage_cleanup_failed"] is False
        assert not storage_service.exists(path)
        assert (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_when_audio_already_gone(self, authenticated_client: AsyncClient, sample_entry):
        storage_service.local_path(sample_entry.original_audio_path).unlink()

        response = await authenticated_client.delete(f"/api/v1/entries/{sample_entry.id}")

        assert response.status_code == 200
        assert response.json()["storage_cleanup_failed"] is True
        assert (await authenticated_client.get(f"/api/v1/entries/{sample_entry.id}")).status_code == 404
