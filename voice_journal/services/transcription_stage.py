"""
Transcription stage of the recording pipeline.

Always yields transcript text: missing credentials degrade to a placeholder
and remote failures degrade to a failure note embedding the error. Callers
never see an exception from this stage.
"""
from datetime import datetime
from typing import Callable, Optional

from voice_journal.config import settings
from voice_journal.services.transcription import TranscriptionService, create_transcription_service
from voice_journal.utils.logger import get_logger

logger = get_logger("transcription_stage")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def size_in_kb(size: int) -> int:
    return round(size / 1000)


def placeholder_transcript(size: int, now: Optional[datetime] = None) -> str:
    """Deterministic stand-in used when transcription is unavailable."""
    now = now or datetime.now()
    return (
        f"Transcription placeholder generated on {now.strftime(TIMESTAMP_FORMAT)}"
        f" - Size: {size_in_kb(size)}KB"
    )


def failure_transcript(error: str, now: Optional[datetime] = None) -> str:
    """Stand-in used when the provider was called and failed."""
    now = now or datetime.now()
    return (
        f"Transcription failed on {now.strftime(TIMESTAMP_FORMAT)}"
        f" - please try again later. Error: {error or 'Unknown error'}"
    )


def is_valid_api_key(api_key: Optional[str]) -> bool:
    """
    Check the credential is present and well-formed.

    Example:
        >>> is_valid_api_key("sk_live_123")
        True
        >>> is_valid_api_key("live_123")
        False
    """
    return bool(api_key) and api_key.startswith(settings.ELEVENLABS_API_KEY_PREFIX)


class TranscriptionStage:
    """Runs one transcription for one recording."""

    def __init__(
        self,
        service_factory: Callable[[], TranscriptionService] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self._service_factory = service_factory or self._default_service
        self._clock = clock

    @staticmethod
    def _default_service() -> TranscriptionService:
        return create_transcription_service(
            provider=settings.TRANSCRIPTION_PROVIDER,
            model_name=settings.ELEVENLABS_MODEL,
            api_key=settings.ELEVENLABS_API_KEY
        )

    @staticmethod
    def degraded_reason() -> Optional[str]:
        """
        Why transcription would run in placeholder mode, or None when it is live.
        """
        if not settings.ENABLE_TRANSCRIPTION:
            return "transcription disabled"
        if settings.TRANSCRIPTION_PROVIDER.lower() != "elevenlabs":
            return None
        if not settings.ELEVENLABS_API_KEY:
            return "API key not configured"
        if not is_valid_api_key(settings.ELEVENLABS_API_KEY):
            return "API key has invalid format"
        return None

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "recording.webm",
        content_type: Optional[str] = None,
        language: Optional[str] = None
    ) -> str:
        """
        Transcribe a recording blob.

        Args:
            audio: Recording bytes
            filename: Name sent to the provider
            content_type: MIME type of the recording
            language: Resolved 3-letter language code

        Returns:
            Non-empty transcript, placeholder or failure note
        """
        reason = self.degraded_reason()
        if reason:
            logger.warning(
                "Transcription unavailable, using placeholder",
                reason=reason,
                size=len(audio)
            )
            return placeholder_transcript(len(audio), self._clock())

        try:
            service = self._service_factory()
            result = await service.transcribe_audio(
                audio,
                filename=filename,
                content_type=content_type,
                language=language
            )
            text = (result.get("text") or "").strip()
            if not text:
                raise RuntimeError("No transcription text returned from API")

            logger.info(
                "Transcription completed",
                filename=filename,
                language=result.get("language", language),
                length=len(text)
            )
            return text

        except Exception as e:
            logger.error(
                "Transcription failed, storing failure note",
                filename=filename,
                language=language,
                error=str(e),
                exc_info=True
            )
            return failure_transcript(str(e), self._clock())


# Global transcription stage instance
transcription_stage = TranscriptionStage()
