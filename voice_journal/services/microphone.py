"""
Host microphone capture source backed by sounddevice (PortAudio).

Install with the ``microphone`` extra. PortAudio delivers int16 PCM blocks
on its own thread; they are handed to the event loop and wrapped into a WAV
container when the recording stops.
"""
import asyncio
from typing import Optional

from voice_journal.config import settings
from voice_journal.exceptions import CaptureError, DeviceNotFound, FormatUnsupported, PermissionDenied
from voice_journal.services.recording import CaptureConstraints, CaptureSource
from voice_journal.utils.audio import pcm_to_wav
from voice_journal.utils.logger import get_logger

logger = get_logger("microphone")


def capture_error_from_portaudio(exc: Exception) -> CaptureError:
    """Map a PortAudio failure message to a capture error."""
    message = str(exc).lower()
    if "permission" in message or "not authorized" in message or "access" in message:
        return PermissionDenied()
    if "sample rate" in message or "sample format" in message or "channels" in message:
        return FormatUnsupported()
    return DeviceNotFound()


class MicrophoneCaptureSource(CaptureSource):
    """Default input device of the machine running the service."""

    mime_type = "audio/wav"

    def __init__(self, device: Optional[int] = None, block_seconds: Optional[float] = None):
        super().__init__()
        self.device = device
        self.block_seconds = block_seconds or settings.RECORDING_CHUNK_SECONDS
        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closing = False
        self._sample_rate = settings.RECORDING_SAMPLE_RATE
        self._channels = 1

    @property
    def kind(self) -> str:
        return "microphone"

    @staticmethod
    def _load_backend():
        try:
            import sounddevice as sd
        except (ImportError, OSError) as exc:
            logger.error("sounddevice backend unavailable", error=str(exc))
            raise DeviceNotFound(
                "Host microphone capture is not available. Install the 'microphone' extra."
            ) from exc
        return sd

    async def open(self, constraints: CaptureConstraints) -> None:
        sd = self._load_backend()
        self._loop = asyncio.get_running_loop()
        self._sample_rate = constraints.sample_rate
        self._channels = constraints.channels
        self._closing = False

        try:
            sd.check_input_settings(
                device=self.device,
                channels=constraints.channels,
                dtype="int16",
                samplerate=constraints.sample_rate
            )
            self._stream = sd.RawInputStream(
                device=self.device,
                samplerate=constraints.sample_rate,
                channels=constraints.channels,
                dtype="int16",
                blocksize=int(constraints.sample_rate * self.block_seconds),
                callback=self._callback,
                finished_callback=self._finished
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            logger.warning("Microphone could not be opened", error=str(exc))
            self._stream = None
            raise capture_error_from_portaudio(exc) from exc

        # PortAudio applies no echo cancellation or noise suppression of its own
        logger.info(
            "Microphone opened",
            device=self.device,
            sample_rate=constraints.sample_rate,
            channels=constraints.channels
        )

    def _callback(self, indata, frames, time, status) -> None:
        if status:
            logger.debug("Microphone status", status=str(status))
        if self._loop is not None and not self._closing:
            self._loop.call_soon_threadsafe(self.push, bytes(indata))

    def _finished(self) -> None:
        if self._closing or self._loop is None or self.on_error is None:
            return
        self._loop.call_soon_threadsafe(
            self.on_error,
            DeviceNotFound("Microphone disconnected during recording.")
        )

    def close(self) -> None:
        self._closing = True
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.warning("Failed to close microphone stream", error=str(e))
        finally:
            self._stream = None

    def finalize(self, chunks) -> bytes:
        if not chunks:
            return b""
        return pcm_to_wav(chunks, sample_rate=self._sample_rate, channels=self._channels)
