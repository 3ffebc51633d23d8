"""
Audio upload validation utilities.
"""
from typing import Optional

from voice_journal.config import settings

EXTENSION_BY_CONTENT_TYPE = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
}

# Formats a browser or the host microphone can produce chunks in
CAPTURE_MIME_TYPES = ["audio/webm", "audio/ogg", "audio/wav", "audio/mpeg", "audio/mp4"]


def base_mime_type(content_type: Optional[str]) -> str:
    """
    Strip codec parameters from a content type.

    Example:
        >>> base_mime_type("audio/webm;codecs=opus")
        'audio/webm'
    """
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


def extension_for(content_type: Optional[str]) -> str:
    """File extension for a content type, defaulting to webm."""
    return EXTENSION_BY_CONTENT_TYPE.get(base_mime_type(content_type), "webm")


def is_capture_format_supported(content_type: Optional[str]) -> bool:
    """A recording can start only in a format the bucket will also accept on save."""
    mime = base_mime_type(content_type)
    return mime in CAPTURE_MIME_TYPES and mime in settings.allowed_audio_mime_types


def upload_rejection_reason(size: int, content_type: Optional[str]) -> Optional[str]:
    """
    Check an upload against the bucket limits.

    Args:
        size: Blob size in bytes
        content_type: Declared content type

    Returns:
        Human-readable reason when the upload must be rejected, else None
    """
    if size > settings.max_file_size_bytes:
        return f"File too large. Maximum size is {settings.MAX_FILE_SIZE_MB}MB"
    mime = base_mime_type(content_type)
    if mime not in settings.allowed_audio_mime_types:
        return f"Content type '{mime or 'unknown'}' is not allowed"
    return None
