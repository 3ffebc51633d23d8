"""
Per-user settings persisted as JSON files on the installation.

Each user has their own ``{user_id}.json`` under the settings directory.
Saved values are merged over the defaults on load. A missing or corrupt
file loads as defaults; only saving can fail.
"""
import json
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from voice_journal.config import settings
from voice_journal.exceptions import SettingsStoreError
from voice_journal.schemas.user_settings import UserSettings, UserSettingsUpdate
from voice_journal.utils.logger import get_logger

logger = get_logger("user_settings")


class LocalSettingsStore:
    """Directory of JSON files, one per user."""

    def __init__(self, directory: Optional[Path] = None):
        self._directory = Path(directory) if directory is not None else None

    @property
    def directory(self) -> Path:
        return self._directory or settings.user_settings_dir

    def path_for(self, owner_id: UUID) -> Path:
        return self.directory / f"{owner_id}.json"

    def load(self, owner_id: UUID) -> UserSettings:
        defaults = UserSettings()
        path = self.path_for(owner_id)
        if not path.exists():
            return defaults

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("settings file must contain a JSON object")
            known = {k: v for k, v in payload.items() if k in UserSettings.model_fields}
            return UserSettings(**{**defaults.model_dump(), **known})
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                "Failed to load user settings, using defaults",
                owner_id=str(owner_id),
                path=str(path),
                error=str(e)
            )
            return defaults

    def save(self, owner_id: UUID, user_settings: UserSettings) -> UserSettings:
        """
        Write one user's settings to disk.

        Raises:
            SettingsStoreError: If the file cannot be written
        """
        path = self.path_for(owner_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(user_settings.model_dump(), indent=2),
                encoding="utf-8"
            )
        except OSError as e:
            logger.error("Failed to save user settings", path=str(path), error=str(e))
            raise SettingsStoreError(str(e)) from e

        logger.info("User settings saved", owner_id=str(owner_id))
        return user_settings

    def update(self, owner_id: UUID, changes: UserSettingsUpdate) -> UserSettings:
        """Apply the provided fields over the user's current settings and save."""
        current = self.load(owner_id)
        merged = current.model_copy(update=changes.model_dump(exclude_none=True))
        return self.save(owner_id, merged)


# Global settings store instance
settings_store = LocalSettingsStore()
