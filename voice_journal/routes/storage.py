"""
Serves objects through signed, expiring URLs.

No bearer token is needed here; the signed token is the credential.
"""
import mimetypes
from fastapi import APIRouter
from fastapi.responses import FileResponse

from voice_journal.services.storage import storage_service
from voice_journal.utils.logger import get_logger

logger = get_logger("storage_routes")
router = APIRouter()


@router.get(
    "/storage/objects/{token}",
    summary="Fetch signed object",
    responses={
        200: {"description": "Audio file"},
        403: {"description": "Signature invalid or expired"}
    }
)
async def get_signed_object(token: str) -> FileResponse:
    file_path = storage_service.resolve_signed_token(token)
    media_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"

    logger.debug("Serving signed object", file=file_path.name)

    return FileResponse(
        path=file_path,
        media_type=media_type,
        headers={
            "Accept-Ranges": "bytes",
            "Cache-Control": "private, no-store",
            "Content-Disposition": f'inline; filename="{file_path.name}"'
        }
    )
