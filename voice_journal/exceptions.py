"""
Exception hierarchy for the voice journal pipeline.

Every pipeline stage either returns a result or raises one of these.
Each error carries a human-readable ``detail`` meant for the user, a stable
machine ``code`` and the HTTP status the API layer answers with.
"""
from datetime import datetime, timezone


class JournalError(Exception):
    """Base exception for all voice journal errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "JOURNAL_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(detail)


# ===== Capture errors =====

class CaptureError(JournalError):
    """Raised when the capture source cannot be acquired or fails mid-recording."""


class PermissionDenied(CaptureError):
    def __init__(self, detail: str = "Microphone access denied. Please allow microphone permissions and try again.") -> None:
        super().__init__(detail=detail, code="PERMISSION_DENIED", status_code=403)


class DeviceNotFound(CaptureError):
    def __init__(self, detail: str = "No microphone found. Please connect a microphone and try again.") -> None:
        super().__init__(detail=detail, code="DEVICE_NOT_FOUND", status_code=404)


class FormatUnsupported(CaptureError):
    def __init__(self, detail: str = "Audio recording is not supported on this device.") -> None:
        super().__init__(detail=detail, code="FORMAT_UNSUPPORTED", status_code=415)


# ===== Recording session errors =====

class RecordingNotFound(JournalError):
    """Raised when a recording session ID does not exist for the owner."""

    def __init__(self, recording_id: str) -> None:
        super().__init__(
            detail=f"Recording not found: {recording_id}",
            code="RECORDING_NOT_FOUND",
            status_code=404,
        )


class InvalidRecordingState(JournalError):
    """Raised when an operation is not allowed in the session's current state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(
            detail=f"Cannot {operation} while recording is {state}",
            code="INVALID_RECORDING_STATE",
            status_code=409,
        )


class RecordingEmpty(JournalError):
    def __init__(self) -> None:
        super().__init__(
            detail="Recording is empty. Please try recording again.",
            code="RECORDING_EMPTY",
            status_code=400,
        )


# ===== Pipeline stage errors =====

class UploadFailed(JournalError):
    """Raised by the upload stage; the finalized blob is kept for a retry."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            detail=f"Failed to upload audio file: {reason}. Please check your connection and try again.",
            code="UPLOAD_FAILED",
            status_code=502,
        )


class PersistenceFailed(JournalError):
    """Raised by the persistence stage; nothing about the recording is saved."""

    def __init__(self, reason: str = "database error") -> None:
        self.reason = reason
        super().__init__(
            detail="Failed to save recording to database. Please try again.",
            code="PERSISTENCE_FAILED",
            status_code=500,
        )


class EntryNotFound(JournalError):
    def __init__(self, entry_id) -> None:
        super().__init__(
            detail=f"Entry with ID {entry_id} not found",
            code="ENTRY_NOT_FOUND",
            status_code=404,
        )


class StorageAccessDenied(JournalError):
    """Raised when a storage path is outside the caller's owner prefix."""

    def __init__(self, path: str) -> None:
        super().__init__(
            detail=f"Access to storage object denied: {path}",
            code="STORAGE_ACCESS_DENIED",
            status_code=403,
        )


class SignedUrlInvalid(JournalError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            detail=f"Signed URL is invalid or expired: {reason}",
            code="SIGNED_URL_INVALID",
            status_code=403,
        )


class ConfirmationRequired(JournalError):
    """Raised when a destructive operation is invoked without explicit confirmation."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            detail=f"{operation} overwrites existing data and must be confirmed",
            code="CONFIRMATION_REQUIRED",
            status_code=409,
        )


class SettingsStoreError(JournalError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            detail=f"Failed to save settings: {reason}",
            code="SETTINGS_STORE_ERROR",
            status_code=500,
        )


class AudioNotFound(JournalError):
    """Raised when an entry's stored audio object is missing."""

    def __init__(self, path: str) -> None:
        super().__init__(
            detail=f"Audio for this entry is no longer available: {path}",
            code="AUDIO_NOT_FOUND",
            status_code=404,
        )
