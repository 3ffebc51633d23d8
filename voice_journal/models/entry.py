"""
SQLAlchemy model for journal entries table.
"""
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional
from sqlalchemy import String, Text, DateTime, Integer, Index, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from voice_journal.database import Base

if TYPE_CHECKING:
    from voice_journal.models.user import User


class Entry(Base):
    """
    One persisted voice-journal record.

    Attributes:
        id: Unique identifier (UUID4), assigned at persistence time
        user_id: Owner of the entry
        title: Human-readable label
        original_audio_path: Owner-scoped storage path of the uploaded recording
        processed_audio_path: Storage path of the processed audio; may equal the original
        transcription: Transcript text, absent until transcription runs
        duration: Recording length in whole seconds, measured by the recording timer.
            Written once at creation and never recomputed from the audio file.
        created_at: Record creation time (immutable)
        updated_at: Last update time
    """

    __tablename__ = "entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default=""
    )

    # Storage references
    original_audio_path: Mapped[str] = mapped_column(
        Text,
        nullable=False
    )

    processed_audio_path: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    transcription: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="entries"
    )

    __table_args__ = (
        Index("idx_entries_user_id", "user_id"),
        Index("idx_entries_created_at", "created_at"),
    )

    @property
    def storage_paths(self) -> list[str]:
        """Distinct storage paths backing this entry (original first)."""
        paths = [self.original_audio_path]
        if self.processed_audio_path and self.processed_audio_path != self.original_audio_path:
            paths.append(self.processed_audio_path)
        return [path for path in paths if path]

    @property
    def playback_path(self) -> str:
        """Path to play back: processed audio when present, original otherwise."""
        return self.processed_audio_path or self.original_audio_path

    def __repr__(self) -> str:
        return f"<Entry(id={self.id}, user_id={self.user_id}, title={self.title})>"
