"""
Per-user settings and the supported language list.
"""
from typing import List
from fastapi import APIRouter, Depends

from voice_journal.middleware.jwt import get_current_user
from voice_journal.models.user import User
from voice_journal.schemas.user_settings import LanguageOption, UserSettings, UserSettingsUpdate
from voice_journal.services.user_settings import settings_store
from voice_journal.utils.language import get_supported_languages
from voice_journal.utils.logger import get_logger

logger = get_logger("settings_routes")
router = APIRouter()


@router.get(
    "/settings",
    response_model=UserSettings,
    summary="Get settings",
    description="The current user's saved settings merged over defaults"
)
async def get_settings(current_user: User = Depends(get_current_user)) -> UserSettings:
    return settings_store.load(current_user.id)


@router.put(
    "/settings",
    response_model=UserSettings,
    summary="Update settings",
    description="Only provided fields are changed",
    responses={500: {"description": "Settings could not be saved"}}
)
async def update_settings(
    changes: UserSettingsUpdate,
    current_user: User = Depends(get_current_user)
) -> UserSettings:
    logger.info(
        "Settings update requested",
        user_id=str(current_user.id),
        fields=sorted(changes.model_dump(exclude_none=True))
    )
    return settings_store.update(current_user.id, changes)


@router.get(
    "/languages",
    response_model=List[LanguageOption],
    summary="Supported transcription languages"
)
async def list_languages() -> List[LanguageOption]:
    return [LanguageOption(**language) for language in get_supported_languages()]
