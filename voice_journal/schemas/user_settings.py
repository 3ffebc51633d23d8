"""
Pydantic schemas for installation-local user settings.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from voice_journal.utils.language import validate_language_code


class UserSettings(BaseModel):
    """
    Settings persisted on the local installation, never in the database.
    """
    default_language: str = Field(
        default="eng",
        description="3-letter transcription language code used when auto-detect is off"
    )
    auto_detect_language: bool = Field(
        default=True,
        description="Derive the transcription language from the client locale"
    )
    notifications: bool = True
    high_quality_audio: bool = Field(
        default=True,
        description="Capture at 44.1kHz instead of 16kHz on the host microphone"
    )
    auto_save_recordings: bool = True

    @field_validator('default_language')
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Validate language code."""
        if not validate_language_code(v):
            raise ValueError(f"Unsupported language code: '{v}'")
        return v


class UserSettingsUpdate(BaseModel):
    """
    Partial update of user settings. Only provided fields change.
    """
    default_language: Optional[str] = None
    auto_detect_language: Optional[bool] = None
    notifications: Optional[bool] = None
    high_quality_audio: Optional[bool] = None
    auto_save_recordings: Optional[bool] = None

    @field_validator('default_language')
    @classmethod
    def validate_language(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate that the language code is supported by the transcription service.

        Raises:
            ValueError: If language code is not supported
        """
        if v is not None and not validate_language_code(v):
            raise ValueError(
                f"Unsupported language code: '{v}'. "
                f"Must be one of the supported 3-letter codes."
            )
        return v


class LanguageOption(BaseModel):
    code: str
    name: str
