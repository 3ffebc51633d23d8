"""
Audio utilities for reading container metadata.
"""
import io
import math
import wave
from typing import Iterable, Optional, Union
from pathlib import Path

from mutagen import File as MutagenFile
from voice_journal.utils.logger import get_logger

logger = get_logger("audio_utils")


def probe_reported_duration(source: Union[str, Path, bytes]) -> Optional[float]:
    """
    Read the duration an audio container reports about itself.

    The value is untrusted: browser-produced WebM commonly carries no
    duration at all, or one that decodes as infinity. The caller decides
    whether it is usable.

    Args:
        source: Path to audio file, or the raw bytes

    Returns:
        Duration in seconds as reported (may be inf or 0.0), or None if the
        container has no duration information
    """
    try:
        target = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else str(source)
        audio = MutagenFile(target)

        if audio is None:
            logger.debug("Mutagen could not detect audio format")
            return None

        length = getattr(audio.info, "length", None) if audio.info is not None else None
        if length is None:
            logger.debug("Audio file has no duration info")
            return None

        logger.debug("Audio duration probed", duration=length)
        return float(length)
    except Exception as e:
        logger.warning(
            "Failed to probe audio duration",
            error=str(e)
        )
        return None


def is_usable_duration(value: Optional[float]) -> bool:
    """A reported duration counts only when it is finite and positive."""
    return value is not None and math.isfinite(value) and value > 0


def pcm_to_wav(
    frames: Iterable[bytes],
    sample_rate: int,
    channels: int = 1,
    sample_width: int = 2
) -> bytes:
    """
    Wrap raw PCM frames into a WAV container.

    Args:
        frames: Little-endian PCM chunks
        sample_rate: Samples per second
        channels: Channel count
        sample_width: Bytes per sample (2 for int16)

    Returns:
        WAV file bytes
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        for chunk in frames:
            wav_file.writeframes(chunk)
    return buffer.getvalue()
