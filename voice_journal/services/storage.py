"""
Object storage service for owner-scoped audio recordings.

Objects live under ``{AUDIO_STORAGE_PATH}/{STORAGE_BUCKET}/{owner_id}/``.
A storage path is always ``{owner_id}/{filename}``; every read, write, delete
and signed URL request checks the caller owns the prefix.
"""
import os
import shutil
import time
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Tuple
from uuid import UUID

import aiofiles
from jose import JWTError

from voice_journal.config import settings
from voice_journal.exceptions import SignedUrlInvalid, StorageAccessDenied, UploadFailed
from voice_journal.utils.jwt import create_storage_token, verify_storage_token
from voice_journal.utils.logger import get_logger
from voice_journal.utils.validators import extension_for, upload_rejection_reason

logger = get_logger("storage")


class StorageService:
    """Private bucket on the local filesystem."""

    def __init__(self, base_path: Optional[Path] = None, bucket: Optional[str] = None):
        self.base_path = Path(base_path or settings.AUDIO_STORAGE_PATH)
        self.bucket = bucket or settings.STORAGE_BUCKET

    @property
    def bucket_path(self) -> Path:
        return self.base_path / self.bucket

    @staticmethod
    def generate_filename(content_type: Optional[str], now_ms: Optional[int] = None) -> str:
        """
        Generate a recording filename.

        Returns:
            Filename in format: recording_{epoch_ms}.{ext}
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f"recording_{now_ms}.{extension_for(content_type)}"

    @staticmethod
    def owner_path(owner_id: UUID, filename: str) -> str:
        return f"{owner_id}/{filename}"

    def check_owner(self, owner_id: UUID, path: str) -> None:
        """
        Enforce owner-prefix access control.

        Raises:
            StorageAccessDenied: If the path is not a direct child of the owner's prefix
        """
        parts = PurePosixPath(path).parts
        if len(parts) != 2 or parts[0] != str(owner_id) or parts[1] in (".", ".."):
            logger.warning("Storage access denied", owner_id=str(owner_id), path=path)
            raise StorageAccessDenied(path)

    def local_path(self, path: str) -> Path:
        """Filesystem location of a storage path."""
        return self.bucket_path / path

    def exists(self, path: str) -> bool:
        return self.local_path(path).is_file()

    def _ensure_directory_exists(self, directory: Path) -> None:
        """
        Create directory if it doesn't exist.

        Raises:
            UploadFailed: If directory creation fails
        """
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create directory", path=str(directory), error=str(e))
            raise UploadFailed(f"Failed to create storage directory: {e}") from e

    async def upload(
        self,
        owner_id: UUID,
        data: bytes,
        filename: str,
        content_type: Optional[str]
    ) -> str:
        """
        Store a finalized recording blob with an atomic write.

        Objects are never overwritten: an existing object at the same path
        fails the upload.

        Args:
            owner_id: Owner of the object
            data: Recording bytes
            filename: Object filename within the owner's prefix
            content_type: Declared MIME type

        Returns:
            Storage path ``{owner_id}/{filename}``

        Raises:
            UploadFailed: On limit violations, conflicts or I/O errors
        """
        path = self.owner_path(owner_id, filename)
        self.check_owner(owner_id, path)

        reason = upload_rejection_reason(len(data), content_type)
        if reason:
            logger.warning("Upload rejected", path=path, reason=reason, size=len(data))
            raise UploadFailed(reason)

        target_path = self.local_path(path)
        if target_path.exists():
            logger.warning("Upload rejected - object exists", path=path)
            raise UploadFailed("The resource already exists")

        self._ensure_directory_exists(target_path.parent)
        temp_path = target_path.with_name(f".{target_path.name}.tmp")

        try:
            async with aiofiles.open(temp_path, 'wb') as out_file:
                await out_file.write(data)

            # No await between this check and the move
            if target_path.exists():
                raise FileExistsError("The resource already exists")

            shutil.move(str(temp_path), str(target_path))
            os.chmod(target_path, 0o644)

            logger.info(
                "Object uploaded",
                path=path,
                size=len(data),
                content_type=content_type
            )
            return path

        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning("Failed to remove temp file", path=str(temp_path))

            logger.error(
                "Failed to upload object",
                path=path,
                error=str(e),
                exc_info=True
            )
            raise UploadFailed(str(e)) from e

    async def read(self, owner_id: UUID, path: str) -> bytes:
        """
        Read an object's bytes.

        Raises:
            StorageAccessDenied: If the owner does not own the path
            FileNotFoundError: If the object does not exist
        """
        self.check_owner(owner_id, path)
        async with aiofiles.open(self.local_path(path), 'rb') as in_file:
            return await in_file.read()

    def create_signed_url(
        self,
        owner_id: UUID,
        path: str,
        ttl_seconds: Optional[int] = None
    ) -> Tuple[str, datetime]:
        """
        Mint a short-lived URL for reading one object.

        Returns:
            Tuple of (url, expiry time)
        """
        self.check_owner(owner_id, path)
        token, expires_at = create_storage_token(path, ttl_seconds or settings.SIGNED_URL_TTL_SECONDS)
        url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/v1/storage/objects/{token}"
        logger.debug("Signed URL created", path=path, expires_at=expires_at.isoformat())
        return url, expires_at

    def resolve_signed_token(self, token: str) -> Path:
        """
        Turn a signed token back into the object's file.

        Raises:
            SignedUrlInvalid: If the token is invalid, expired or the object is gone
        """
        try:
            path = verify_storage_token(token)
        except JWTError as e:
            raise SignedUrlInvalid(str(e)) from e

        parts = PurePosixPath(path).parts
        if len(parts) != 2 or ".." in parts:
            raise SignedUrlInvalid("malformed path")

        file_path = self.local_path(path)
        if not file_path.is_file():
            raise SignedUrlInvalid("object not found")
        return file_path

    async def remove(self, owner_id: UUID, paths: Iterable[str]) -> Optional[str]:
        """
        Remove objects, continuing past failures.

        Returns:
            Combined error message if any object could not be removed, else None
        """
        errors = []
        for path in paths:
            try:
                self.check_owner(owner_id, path)
                self.local_path(path).unlink()
                logger.info("Object removed", path=path)
            except StorageAccessDenied as e:
                errors.append(e.detail)
            except FileNotFoundError:
                errors.append(f"Object not found: {path}")
            except OSError as e:
                errors.append(f"{path}: {e}")

        if errors:
            return "; ".join(errors)
        return None


# Global storage service instance
storage_service = StorageService()
