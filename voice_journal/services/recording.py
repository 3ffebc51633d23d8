"""
Recording sessions: capture sources, the wall-clock timer and the session
state machine.

A session moves ``idle -> recording -> finalized -> uploading`` and back:

- ``start`` acquires the capture source; on failure the session stays idle
  with its error slot populated.
- ``stop`` halts capture, releases the device and concatenates the chunks
  into one blob. The timer value at that moment becomes the duration.
- ``discard`` drops everything and returns to idle.
- A save takes the blob (``begin_upload``); a failed save returns to
  finalized with the blob kept for a retry.
"""
import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional
from uuid import UUID

from voice_journal.config import settings
from voice_journal.exceptions import (
    CaptureError,
    DeviceNotFound,
    FormatUnsupported,
    InvalidRecordingState,
    PermissionDenied,
    RecordingEmpty,
    RecordingNotFound,
)
from voice_journal.utils.logger import get_logger
from voice_journal.utils.resource_slot import ResourceSlot
from voice_journal.utils.validators import base_mime_type, is_capture_format_supported

logger = get_logger("recording")

RECORDING_FAILED_MESSAGE = "Recording failed. Please try again."


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINALIZED = "finalized"
    UPLOADING = "uploading"


@dataclass
class CaptureConstraints:
    """Audio processing requested from the capture device."""
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_rate: int = 44100
    channels: int = 1

    @classmethod
    def for_quality(cls, high_quality: bool) -> "CaptureConstraints":
        return cls(
            sample_rate=settings.RECORDING_SAMPLE_RATE if high_quality
            else settings.RECORDING_LOW_QUALITY_SAMPLE_RATE
        )


def capture_error_from_name(name: Optional[str], message: Optional[str] = None) -> CaptureError:
    """
    Map a browser DOMException name to a capture error.

    Example:
        >>> type(capture_error_from_name("NotAllowedError")).__name__
        'PermissionDenied'
    """
    if name in ("NotAllowedError", "SecurityError", "PermissionDeniedError"):
        return PermissionDenied()
    if name in ("NotFoundError", "DevicesNotFoundError", "OverconstrainedError"):
        return DeviceNotFound()
    if name in ("NotSupportedError", "TypeError"):
        return FormatUnsupported()
    return CaptureError(
        detail=message or "Failed to access microphone.",
        code="CAPTURE_FAILED",
        status_code=400,
    )


class CaptureSource(ABC):
    """
    A device that produces audio chunks while open.

    Sources report failures raised during capture through ``on_error``;
    the session assigns it before opening.
    """

    mime_type: str = "audio/webm"

    def __init__(self) -> None:
        self.on_error: Optional[Callable[[CaptureError], None]] = None
        self._chunks: List[bytes] = []

    @property
    def kind(self) -> str:
        return "stream"

    @abstractmethod
    async def open(self, constraints: CaptureConstraints) -> None:
        """
        Acquire the device.

        Raises:
            CaptureError: PermissionDenied, DeviceNotFound or FormatUnsupported
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def push(self, chunk: bytes) -> None:
        """Append a captured chunk. Empty chunks are ignored."""
        if chunk:
            self._chunks.append(bytes(chunk))

    @property
    def size(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    def drain(self) -> List[bytes]:
        chunks, self._chunks = self._chunks, []
        return chunks

    def finalize(self, chunks: List[bytes]) -> bytes:
        """Assemble captured chunks into one blob in the source's container format."""
        return b"".join(chunks)


class StreamedCaptureSource(CaptureSource):
    """
    Chunks recorded by a browser and pushed over HTTP.

    A browser that could not open its microphone reports the DOMException
    name, which fails ``open`` with the matching error.
    """

    def __init__(self, mime_type: Optional[str] = None, reported_error: Optional[str] = None):
        super().__init__()
        self.mime_type = base_mime_type(mime_type) or base_mime_type(settings.RECORDING_MIME_TYPE)
        self.reported_error = reported_error
        self.is_open = False

    async def open(self, constraints: CaptureConstraints) -> None:
        if self.reported_error:
            raise capture_error_from_name(self.reported_error)
        if not is_capture_format_supported(self.mime_type):
            raise FormatUnsupported()
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


class RecordingTimer:
    """
    Wall-clock elapsed-seconds counter, independent of the capture stream.

    Ticks every ``tick_seconds`` and stores whole elapsed seconds.
    """

    def __init__(
        self,
        tick_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.tick_seconds = tick_seconds or settings.RECORDING_TICK_SECONDS
        self._clock = clock
        self._started_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self.elapsed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self.elapsed = 0
        self._started_at = self._clock()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.tick()

    def tick(self) -> int:
        if self._started_at is not None:
            self.elapsed = int(self._clock() - self._started_at)
        return self.elapsed

    def stop(self) -> int:
        """Stop ticking and return the frozen elapsed seconds."""
        self.tick()
        self.cancel()
        return self.elapsed

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


class RecordingSession:
    """One recording for one owner."""

    def __init__(
        self,
        owner_id: UUID,
        source: CaptureSource,
        constraints: Optional[CaptureConstraints] = None,
        timer: Optional[RecordingTimer] = None
    ):
        self.id = uuid.uuid4().hex
        self.owner_id = owner_id
        self.source = source
        self.constraints = constraints or CaptureConstraints()
        self.timer = timer or RecordingTimer()
        self.state = RecordingState.IDLE
        self.error: Optional[str] = None
        self.blob: Optional[bytes] = None
        self.duration: Optional[int] = None
        self.started_at: Optional[datetime] = None

    @property
    def mime_type(self) -> str:
        return self.source.mime_type

    @property
    def elapsed_seconds(self) -> int:
        if self.state == RecordingState.RECORDING:
            return self.timer.elapsed
        return self.duration or 0

    @property
    def size_bytes(self) -> int:
        if self.blob is not None:
            return len(self.blob)
        return self.source.size

    def _require(self, operation: str, *states: RecordingState) -> None:
        if self.state not in states:
            raise InvalidRecordingState(operation, self.state.value)

    async def start(self) -> None:
        """
        Acquire the capture source and start the timer.

        Raises:
            CaptureError: If the source cannot be acquired; the session stays idle
            InvalidRecordingState: If not idle
        """
        self._require("start recording", RecordingState.IDLE)
        self.error = None
        self.source.on_error = self._handle_capture_error

        try:
            await self.source.open(self.constraints)
        except CaptureError as e:
            self.error = e.detail
            logger.warning(
                "Capture source could not be acquired",
                recording_id=self.id,
                code=e.code
            )
            raise

        self.blob = None
        self.duration = None
        self.started_at = datetime.now(timezone.utc)
        self.timer.start()
        self.state = RecordingState.RECORDING
        logger.info(
            "Recording started",
            recording_id=self.id,
            owner_id=str(self.owner_id),
            source=self.source.kind,
            mime_type=self.mime_type
        )

    def append_chunk(self, chunk: bytes) -> int:
        """Add a pushed chunk; returns the total captured size."""
        self._require("append audio", RecordingState.RECORDING)
        self.source.push(chunk)
        return self.source.size

    async def stop(self) -> bytes:
        """
        Halt capture and produce the blob.

        Returns:
            The finalized blob (possibly empty)
        """
        self._require("stop recording", RecordingState.RECORDING)
        self.duration = self.timer.stop()
        self.source.close()
        self.blob = self.source.finalize(self.source.drain())
        self.state = RecordingState.FINALIZED
        logger.info(
            "Recording finalized",
            recording_id=self.id,
            duration=self.duration,
            size=len(self.blob)
        )
        return self.blob

    def discard(self) -> None:
        """Drop any capture or blob and return to idle."""
        self._require("discard", RecordingState.RECORDING, RecordingState.FINALIZED, RecordingState.IDLE)
        self._reset()
        logger.info("Recording discarded", recording_id=self.id)

    def begin_upload(self) -> bytes:
        """
        Take the blob for saving.

        Raises:
            InvalidRecordingState: If a save is already running or nothing is finalized
            RecordingEmpty: If the blob has no bytes
        """
        if self.state == RecordingState.UPLOADING:
            raise InvalidRecordingState("save", "already being saved")
        self._require("save", RecordingState.FINALIZED)
        if not self.blob:
            raise RecordingEmpty()
        self.error = None
        self.state = RecordingState.UPLOADING
        return self.blob

    def complete_upload(self) -> None:
        if self.state == RecordingState.UPLOADING:
            self._reset()

    def fail_upload(self, message: str) -> None:
        """Return to finalized with the blob kept so the user can retry."""
        if self.state == RecordingState.UPLOADING:
            self.state = RecordingState.FINALIZED
            self.error = message

    def close(self) -> None:
        """Teardown: cancel the timer and release the device."""
        self.timer.cancel()
        self.source.close()
        if self.state != RecordingState.UPLOADING:
            self._reset()

    def _reset(self) -> None:
        self.timer.cancel()
        self.source.close()
        self.source.drain()
        self.blob = None
        self.duration = None
        self.error = None
        self.state = RecordingState.IDLE

    def _handle_capture_error(self, error: CaptureError) -> None:
        if self.state != RecordingState.RECORDING:
            return
        logger.error(
            "Capture failed during recording",
            recording_id=self.id,
            code=error.code,
            error=error.detail
        )
        self._reset()
        self.error = RECORDING_FAILED_MESSAGE


class RecordingRegistry:
    """
    In-memory sessions for the running process, keyed by id.

    Each owner holds at most one active session; starting another releases
    the previous one unless it is still being saved.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, RecordingSession] = {}
        self._slots: ResourceSlot[RecordingSession] = ResourceSlot(release=self._release)

    def __len__(self) -> int:
        return len(self._sessions)

    def _release(self, session: RecordingSession) -> None:
        if session.state == RecordingState.UPLOADING:
            # A save in flight keeps its session registered for a retry
            logger.info(
                "Previous recording still saving, kept",
                recording_id=session.id
            )
            return
        logger.info(
            "Releasing previous recording",
            recording_id=session.id,
            state=session.state.value
        )
        session.close()
        self._sessions.pop(session.id, None)

    async def start(
        self,
        owner_id: UUID,
        source: CaptureSource,
        constraints: Optional[CaptureConstraints] = None
    ) -> RecordingSession:
        """
        Start a new session for ``owner_id``.

        Raises:
            CaptureError: If the source cannot be acquired
        """
        session = RecordingSession(owner_id, source, constraints)
        self._slots.occupy(owner_id, session)

        try:
            await session.start()
        except CaptureError:
            self._slots.vacate(owner_id, session)
            raise

        self._sessions[session.id] = session
        return session

    def get(self, owner_id: UUID, recording_id: str) -> RecordingSession:
        """
        Raises:
            RecordingNotFound: If no such session exists for this owner
        """
        session = self._sessions.get(recording_id)
        if session is None or session.owner_id != owner_id:
            raise RecordingNotFound(recording_id)
        return session

    def discard(self, owner_id: UUID, recording_id: str) -> None:
        session = self.get(owner_id, recording_id)
        session.discard()
        self.remove(session)

    def remove(self, session: RecordingSession) -> None:
        self._sessions.pop(session.id, None)
        self._slots.vacate(session.owner_id, session)

    def close_all(self) -> None:
        """Teardown on shutdown."""
        for session in list(self._sessions.values()):
            session.close()
        self._sessions.clear()
        logger.info("Recording registry closed")
