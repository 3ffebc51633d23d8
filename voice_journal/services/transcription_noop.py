"""
NoOp Transcription Service for testing.
Returns mock data without calling any actual transcription service.
"""
from typing import Dict, Any, Optional

from voice_journal.services.transcription import TranscriptionService
from voice_journal.utils.logger import get_logger


logger = get_logger("services.transcription_noop")


class NoOpTranscriptionService(TranscriptionService):
    """No-operation transcription service for testing."""

    def __init__(self, model_name: str = "noop-stt-test"):
        self.model_name = model_name
        logger.info(f"NoOpTranscriptionService initialized with model={model_name}")

    async def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        content_type: Optional[str] = None,
        language: Optional[str] = None
    ) -> Dict[str, Any]:
        """Return a mock transcription naming the file and language."""
        logger.info(f"NoOp transcription called for file={filename}, language={language}")

        return {
            "text": f"[NoOp Transcription] This is a test transcription for {filename}",
            "language": language or "eng",
        }

    def get_model_name(self) -> str:
        return self.model_name
