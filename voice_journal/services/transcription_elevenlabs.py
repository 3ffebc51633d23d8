"""
ElevenLabs Speech-to-Text implementation.
Single multipart request per recording; no polling.
"""
from typing import Dict, Any, Optional

import httpx

from voice_journal.config import settings
from voice_journal.services.transcription import TranscriptionService
from voice_journal.utils.logger import get_logger

logger = get_logger("transcription.elevenlabs")


class ElevenLabsTranscriptionService(TranscriptionService):
    """
    ElevenLabs API implementation for transcription.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "scribe_v1",
        api_url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url or settings.ELEVENLABS_API_URL
        self.timeout = timeout or settings.ELEVENLABS_TIMEOUT

        logger.info(f"ElevenLabsTranscriptionService initialized with model={model}")

    def _get_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        return {"xi-api-key": self.api_key}

    async def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        content_type: Optional[str] = None,
        language: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send the recording to ElevenLabs and return the transcript.

        Raises:
            RuntimeError: On transport errors, non-200 responses or empty text
        """
        data = {"model_id": self.model}
        if language:
            data["language_code"] = language

        files = {"file": (filename, audio, content_type or "application/octet-stream")}

        logger.info(
            "Submitting audio to ElevenLabs",
            filename=filename,
            size=len(audio),
            language=language,
            model=self.model
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    headers=self._get_headers(),
                    data=data,
                    files=files
                )
        except httpx.HTTPError as e:
            raise RuntimeError(f"ElevenLabs request failed: {e}") from e

        if response.status_code != 200:
            raise RuntimeError(
                f"ElevenLabs transcription failed: {response.status_code} - {response.text}"
            )

        result = response.json()
        text = (result.get("text") or "").strip()
        if not text:
            raise RuntimeError("No transcription text returned from API")

        logger.info(
            "Transcription received",
            filename=filename,
            length=len(text),
            language=result.get("language_code")
        )

        return {
            "text": text,
            "language": result.get("language_code") or language,
        }

    def get_model_name(self) -> str:
        return self.model
