"""
Transcription service for audio-to-text conversion.
Provides abstract base class and factory function.
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from voice_journal.utils.logger import get_logger

logger = get_logger("transcription")


class TranscriptionService(ABC):
    """
    Abstract base class for speech-to-text providers.
    """

    @abstractmethod
    async def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        content_type: Optional[str] = None,
        language: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Transcribe an audio blob to text.

        Args:
            audio: Recording bytes
            filename: Name sent along with the upload
            content_type: MIME type of the recording
            language: 3-letter language code, or None to let the provider detect

        Returns:
            Dict containing:
                - text: Transcribed text (non-empty)
                - language: Detected/used language

        Raises:
            RuntimeError: If transcription fails or returns no text
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Name/identifier of the model being used."""
        pass


def create_transcription_service(
    provider: str = "elevenlabs",
    model_name: Optional[str] = None,
    api_key: Optional[str] = None
) -> TranscriptionService:
    """
    Factory function to create transcription service based on provider.

    Args:
        provider: Provider name ("elevenlabs" or "noop")
        model_name: Model identifier (e.g. 'scribe_v1')
        api_key: API key for the provider

    Returns:
        TranscriptionService implementation

    Raises:
        ValueError: If provider is not supported or required params missing
    """
    provider = provider.lower()

    if provider == "elevenlabs":
        if api_key is None:
            raise ValueError("api_key is required for elevenlabs provider")

        from voice_journal.services.transcription_elevenlabs import ElevenLabsTranscriptionService
        return ElevenLabsTranscriptionService(
            api_key=api_key,
            model=model_name or "scribe_v1"
        )
    elif provider == "noop":
        from voice_journal.services.transcription_noop import NoOpTranscriptionService
        return NoOpTranscriptionService(model_name=model_name or "noop-stt-test")
    else:
        raise ValueError(
            f"Unsupported transcription provider: {provider}. "
            f"Supported providers: 'elevenlabs', 'noop'"
        )
