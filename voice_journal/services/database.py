"""
Database service for CRUD operations on users and journal entries.
"""
from uuid import UUID
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status

from voice_journal.exceptions import PersistenceFailed
from voice_journal.models.user import User
from voice_journal.models.entry import Entry
from voice_journal.schemas.auth import UserCreate
from voice_journal.schemas.entry import EntryCreate
from voice_journal.utils.logger import get_logger
from voice_journal.utils.security import hash_password

logger = get_logger("database_service")


class DatabaseService:
    """Service for database operations on users and entries."""

    # ==========================================
    # Entry Operations
    # ==========================================

    async def create_entry(
        self,
        db: AsyncSession,
        entry_data: EntryCreate
    ) -> Entry:
        """
        Insert one entry row and commit it.

        This is the commit point of the recording pipeline: once it returns,
        the entry exists.

        Args:
            db: Database session
            entry_data: Entry data to create

        Returns:
            Created Entry with id and timestamps populated

        Raises:
            PersistenceFailed: If the insert or commit fails
        """
        try:
            entry = Entry(
                user_id=entry_data.user_id,
                title=entry_data.title,
                original_audio_path=entry_data.original_audio_path,
                processed_audio_path=entry_data.processed_audio_path,
                transcription=entry_data.transcription,
                duration=entry_data.duration
            )

            db.add(entry)
            await db.flush()
            await db.commit()
            await db.refresh(entry)

            logger.info(
                "Database entry created",
                entry_id=str(entry.id),
                user_id=str(entry.user_id),
                duration=entry.duration
            )

            return entry

        except Exception as e:
            await db.rollback()
            logger.error(
                "Failed to create database entry",
                path=entry_data.original_audio_path,
                error=str(e),
                exc_info=True
            )
            raise PersistenceFailed(str(e)) from e

    async def get_entry_by_id(
        self,
        db: AsyncSession,
        entry_id: UUID,
        user_id: Optional[UUID] = None
    ) -> Optional[Entry]:
        """
        Retrieve an entry by ID, optionally filtered by user_id.

        Args:
            db: Database session
            entry_id: UUID of the entry to retrieve
            user_id: Optional UUID to filter by user ownership

        Returns:
            Entry if found, None otherwise
        """
        try:
            query = select(Entry).where(Entry.id == entry_id)

            if user_id is not None:
                query = query.where(Entry.user_id == user_id)

            result = await db.execute(query)
            entry = result.scalar_one_or_none()

            if entry:
                logger.debug("Entry retrieved", entry_id=str(entry_id))
            else:
                logger.info("Entry not found", entry_id=str(entry_id))

            return entry

        except Exception as e:
            logger.error(
                "Failed to retrieve entry",
                entry_id=str(entry_id),
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve entry from database"
            )

    async def get_entries_by_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: int = 20,
        offset: int = 0
    ) -> list[Entry]:
        """
        Get a page of entries for a user, newest first.

        Args:
            db: Database session
            user_id: UUID of the user
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            List of Entry instances
        """
        try:
            query = (
                select(Entry)
                .where(Entry.user_id == user_id)
                .order_by(Entry.created_at.desc())
                .limit(limit)
                .offset(offset)
            )

            result = await db.execute(query)
            entries = list(result.scalars().all())

            logger.info(
                "Retrieved entries for user",
                user_id=str(user_id),
                count=len(entries),
                limit=limit,
                offset=offset
            )

            return entries

        except Exception as e:
            logger.error(
                "Failed to retrieve entries for user",
                user_id=str(user_id),
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve entries"
            )

    async def count_entries_by_user(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> int:
        """Count total number of entries for a user."""
        try:
            result = await db.execute(
                select(func.count())
                .select_from(Entry)
                .where(Entry.user_id == user_id)
            )
            return result.scalar() or 0

        except Exception as e:
            logger.error(
                "Failed to count entries for user",
                user_id=str(user_id),
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to count entries"
            )

    async def update_transcription(
        self,
        db: AsyncSession,
        entry: Entry,
        transcription: str
    ) -> Entry:
        """
        Overwrite an entry's transcript. No other column changes besides updated_at.

        Raises:
            PersistenceFailed: If the update fails
        """
        try:
            entry.transcription = transcription
            await db.flush()
            await db.commit()
            await db.refresh(entry)

            logger.info(
                "Entry transcription updated",
                entry_id=str(entry.id),
                length=len(transcription)
            )
            return entry

        except Exception as e:
            await db.rollback()
            logger.error(
                "Failed to update entry transcription",
                entry_id=str(entry.id),
                error=str(e),
                exc_info=True
            )
            raise PersistenceFailed(str(e)) from e

    async def delete_entry_row(
        self,
        db: AsyncSession,
        entry: Entry
    ) -> None:
        """
        Delete an entry row.

        Raises:
            PersistenceFailed: If the delete fails
        """
        entry_id = str(entry.id)
        try:
            await db.delete(entry)
            await db.flush()
            await db.commit()

            logger.info("Entry deleted from database", entry_id=entry_id)

        except Exception as e:
            await db.rollback()
            logger.error(
                "Failed to delete entry",
                entry_id=entry_id,
                error=str(e),
                exc_info=True
            )
            raise PersistenceFailed(str(e)) from e

    # ==========================================
    # User Operations
    # ==========================================

    async def create_user(
        self,
        db: AsyncSession,
        user_data: UserCreate
    ) -> User:
        """
        Create a new user in the database.

        Args:
            db: Database session
            user_data: User registration data

        Returns:
            Created User instance

        Raises:
            HTTPException: If user already exists or database operation fails
        """
        try:
            existing_user = await self.get_user_by_email(db, user_data.email)
            if existing_user:
                logger.warning("User registration failed - email already exists", email=user_data.email)
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered"
                )

            user = User(
                email=user_data.email,
                hashed_password=hash_password(user_data.password),
                is_active=True
            )

            db.add(user)
            await db.flush()
            await db.refresh(user)

            logger.info("User created successfully", user_id=str(user.id), email=user.email)

            return user

        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                "Failed to create user",
                email=user_data.email,
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create user"
            )

    async def get_user_by_email(
        self,
        db: AsyncSession,
        email: str
    ) -> Optional[User]:
        """Get a user by email address, or None."""
        try:
            result = await db.execute(
                select(User).where(User.email == email)
            )
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(
                "Failed to get user by email",
                email=email,
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve user"
            )

    async def get_user_by_id(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[User]:
        """Get a user by ID, or None."""
        try:
            result = await db.execute(
                select(User).where(User.id == user_id)
            )
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(
                "Failed to get user by ID",
                user_id=str(user_id),
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve user"
            )


# Global database service instance
db_service = DatabaseService()
