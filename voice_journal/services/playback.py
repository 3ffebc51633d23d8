"""
Playback of persisted entries.

Two halves:

- ``PlaybackResolver`` runs per request on the server: it mints a fresh
  signed URL and reconciles the display duration from the container
  metadata and the stored timer value.
- ``PlaybackController`` drives a media element on the player side. Its
  state is derived only from the element's events.

Recorded WebM commonly reports no duration or an infinite one, so the
duration shown comes from ``DurationReconciler``: the first finite positive
reported value within the grace period wins, otherwise the stored value.
Once shown it is never replaced.
"""
import asyncio
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from voice_journal.config import settings
from voice_journal.services.pipeline import RecordingPipeline, pipeline
from voice_journal.services.storage import StorageService, storage_service
from voice_journal.utils.audio import is_usable_duration, probe_reported_duration
from voice_journal.utils.logger import get_logger
from voice_journal.utils.resource_slot import ResourceSlot

logger = get_logger("playback")

PLAYBACK_FAILED_MESSAGE = "Failed to play recording. Please try again."


def format_time(seconds: Optional[float]) -> str:
    """
    Render seconds as M:SS.

    Example:
        >>> format_time(75.4)
        '1:15'
        >>> format_time(float("inf"))
        '0:00'
    """
    if seconds is None or not math.isfinite(seconds):
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


class DurationReconciler:
    """Decides the single duration a player displays."""

    def __init__(self, stored_duration: Optional[float], grace_period: Optional[float] = None):
        self.stored_duration = stored_duration
        self.grace_period = settings.DURATION_GRACE_PERIOD_SECONDS if grace_period is None else grace_period
        self.displayed: Optional[float] = None
        self.source: Optional[str] = None
        self._decided = asyncio.Event()

    @property
    def decided(self) -> bool:
        return self._decided.is_set()

    def observe(self, reported: Optional[float]) -> Optional[float]:
        """Offer a media-reported duration; only the first usable one before a decision counts."""
        if self.displayed is None and is_usable_duration(reported):
            self.displayed = float(reported)
            self.source = "media"
            self._decided.set()
        return self.displayed

    def expire(self) -> Optional[float]:
        """Grace period over: fall back to the stored duration if nothing usable arrived."""
        if self.displayed is None and self.stored_duration:
            self.displayed = float(self.stored_duration)
            self.source = "stored"
        self._decided.set()
        return self.displayed

    async def settle(self) -> Optional[float]:
        """Wait up to the grace period for a reported duration, then decide."""
        if not self.decided:
            try:
                await asyncio.wait_for(self._decided.wait(), timeout=self.grace_period)
            except asyncio.TimeoutError:
                logger.debug(
                    "No usable media duration within grace period",
                    stored_duration=self.stored_duration
                )
        return self.expire()


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class MediaElement(Protocol):
    """The subset of an audio element the controller drives."""

    current_time: float

    async def play(self) -> None:
        ...

    def pause(self) -> None:
        ...


class PlaybackController:
    """
    Event-driven playback state for one media element.

    Only element events change ``state``; calling ``play`` merely requests
    playback and leaves the state alone if the request fails.
    """

    def __init__(
        self,
        element: MediaElement,
        reconciler: DurationReconciler,
        slot: Optional[ResourceSlot["PlaybackController"]] = None,
        slot_key: str = "player"
    ):
        self.element = element
        self.reconciler = reconciler
        self.slot = slot
        self.slot_key = slot_key
        self.state = PlaybackState.IDLE
        self.position = 0.0
        self.message: Optional[str] = None

    @property
    def duration(self) -> Optional[float]:
        return self.reconciler.displayed

    # ===== Element events =====

    def on_duration(self, reported: Optional[float]) -> None:
        """loadedmetadata / durationchange / canplay."""
        self.reconciler.observe(reported)

    def on_time_update(self, current_time: float) -> None:
        if math.isfinite(current_time):
            self.position = current_time

    def on_play(self) -> None:
        self.state = PlaybackState.PLAYING
        self.message = None

    def on_pause(self) -> None:
        if self.state == PlaybackState.PLAYING:
            self.state = PlaybackState.PAUSED

    def on_ended(self) -> None:
        self.state = PlaybackState.ENDED
        self.position = 0.0
        self._vacate()

    def on_error(self, detail: Optional[str] = None) -> None:
        logger.warning("Media element error", detail=detail)
        self.state = PlaybackState.IDLE
        self.position = 0.0
        self.message = PLAYBACK_FAILED_MESSAGE
        self._vacate()

    # ===== Commands =====

    async def play(self) -> bool:
        """Request playback; the previous occupant of the slot is paused first."""
        if self.slot is not None:
            self.slot.occupy(self.slot_key, self)
        try:
            await self.element.play()
        except Exception as e:
            logger.warning("Media element refused to play", error=str(e))
            self.message = PLAYBACK_FAILED_MESSAGE
            self._vacate()
            return False
        return True

    def pause(self) -> None:
        self.element.pause()

    def release(self) -> None:
        """Called by the slot when another element takes over."""
        self.element.pause()

    def seek(self, target: float) -> Optional[float]:
        """
        Move to ``target`` seconds, clamped to [0, displayed duration].

        Returns:
            The applied position, or None when the duration is unknown
        """
        duration = self.duration
        if not duration or not math.isfinite(target):
            logger.warning("Seek ignored, duration unknown", target=target, duration=duration)
            self.message = "Cannot seek until the recording length is known."
            return None
        clamped = max(0.0, min(duration, target))
        self.element.current_time = clamped
        self.position = clamped
        return clamped

    def _vacate(self) -> None:
        if self.slot is not None:
            self.slot.vacate(self.slot_key, self)


def playback_slot() -> ResourceSlot[PlaybackController]:
    """Slot allowing one playing element at a time."""
    return ResourceSlot(release=lambda controller: controller.release())


@dataclass
class ResolvedPlayback:
    entry_id: UUID
    url: str
    expires_at: datetime
    stored_duration: Optional[int]
    reported_duration: Optional[float]
    displayed_duration: Optional[float]
    duration_source: Optional[str]


class PlaybackResolver:
    """Builds a playable source for one entry on each request."""

    def __init__(
        self,
        recordings: RecordingPipeline = pipeline,
        storage: StorageService = storage_service
    ):
        self.recordings = recordings
        self.storage = storage

    async def resolve(self, db: AsyncSession, owner_id: UUID, entry_id: UUID) -> ResolvedPlayback:
        """
        Raises:
            EntryNotFound: If the entry does not exist for this owner
        """
        entry = await self.recordings.get_entry(db, owner_id, entry_id)
        path = entry.playback_path

        url, expires_at = self.storage.create_signed_url(owner_id, path)

        reported = None
        if self.storage.exists(path):
            reported = await asyncio.to_thread(probe_reported_duration, self.storage.local_path(path))

        reconciler = DurationReconciler(entry.duration)
        reconciler.observe(reported)
        displayed = reconciler.expire()

        logger.info(
            "Playback resolved",
            entry_id=str(entry_id),
            path=path,
            reported_duration=reported,
            displayed_duration=displayed,
            duration_source=reconciler.source
        )

        return ResolvedPlayback(
            entry_id=entry.id,
            url=url,
            expires_at=expires_at,
            stored_duration=entry.duration,
            reported_duration=reported if is_usable_duration(reported) else None,
            displayed_duration=displayed,
            duration_source=reconciler.source
        )


# Global playback resolver instance
playback_resolver = PlaybackResolver()
