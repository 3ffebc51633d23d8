"""
Configuration management using Pydantic Settings.
Loads configuration from environment variables and .env file.
"""
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "postgres"
    DATABASE_USER: str = "journal_user"
    DATABASE_PASSWORD: str = ""
    DATABASE_URL: Optional[str] = None  # Overrides the assembled PostgreSQL URL when set
    DB_SCHEMA: str = "journal"  # Schema name for all tables (use "journal_test" for tests)

    # Application Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    PUBLIC_BASE_URL: str = "http://localhost:8000"  # Used to build signed URLs

    # Object Storage Configuration
    AUDIO_STORAGE_PATH: str = "/app/data/audio"
    STORAGE_BUCKET: str = "audio-recordings"
    MAX_FILE_SIZE_MB: int = 50
    ALLOWED_AUDIO_MIME_TYPES: str = "audio/webm,audio/wav,audio/mp3,audio/mpeg,audio/ogg,audio/mp4"
    SIGNED_URL_TTL_SECONDS: int = 3600  # Signed playback links expire after one hour
    SIGNED_URL_SECRET: Optional[str] = None  # Optional - falls back to JWT_SECRET_KEY

    # Transcription Configuration (ElevenLabs Speech-to-Text)
    ENABLE_TRANSCRIPTION: bool = True  # Feature flag - False always yields placeholder text
    TRANSCRIPTION_PROVIDER: str = "elevenlabs"  # "elevenlabs" or "noop"
    ELEVENLABS_API_KEY: Optional[str] = None  # Missing or malformed key degrades to placeholder
    ELEVENLABS_API_KEY_PREFIX: str = "sk_"
    ELEVENLABS_API_URL: str = "https://api.elevenlabs.io/v1/speech-to-text"
    ELEVENLABS_MODEL: str = "scribe_v1"
    ELEVENLABS_TIMEOUT: float = 120.0
    DEFAULT_TRANSCRIPTION_LANGUAGE: str = "eng"

    # Recording Configuration
    RECORDING_TICK_SECONDS: float = 1.0  # Wall-clock timer resolution
    RECORDING_CHUNK_SECONDS: float = 1.0  # Capture chunk size for host microphone
    RECORDING_SAMPLE_RATE: int = 44100
    RECORDING_LOW_QUALITY_SAMPLE_RATE: int = 16000
    RECORDING_MIME_TYPE: str = "audio/webm"  # Assumed for streamed chunks when the client declares none
    ENTRY_TITLE_PREFIX: str = "Founder Log"

    # Playback Configuration
    DURATION_GRACE_PERIOD_SECONDS: float = 1.0  # Wait for media-reported duration before fallback

    # Per-user settings files, one {user_id}.json each
    USER_SETTINGS_DIR: str = "~/.voice-journal/settings"

    # CORS Configuration
    CORS_ORIGINS: str = "*"

    # Worker Configuration
    WORKERS: int = 1

    # Database Pool Configuration
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Development/Debug
    DEBUG: bool = False
    RELOAD: bool = False

    # Authentication & JWT Configuration
    JWT_SECRET_KEY: str  # Required - no default for security
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Logging Configuration (Optional - per-module log levels)
    APP_LOG_LEVEL: Optional[str] = None
    SQLALCHEMY_LOG_LEVEL: Optional[str] = None
    UVICORN_LOG_LEVEL: Optional[str] = None
    HTTPX_LOG_LEVEL: Optional[str] = None
    ASYNCPG_LOG_LEVEL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def database_url(self) -> str:
        """Construct async database URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite (local development and tests)."""
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_file_size_bytes(self) -> int:
        """Convert max file size from MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def allowed_audio_mime_types(self) -> List[str]:
        """Parse allowed upload MIME types from comma-separated string."""
        return [mime.strip() for mime in self.ALLOWED_AUDIO_MIME_TYPES.split(",") if mime.strip()]

    @property
    def signing_key(self) -> str:
        """
        Key for signing storage URLs.
        Falls back to JWT_SECRET_KEY if SIGNED_URL_SECRET not set.
        """
        return self.SIGNED_URL_SECRET or self.JWT_SECRET_KEY

    @property
    def user_settings_dir(self) -> Path:
        """Expanded directory holding per-user settings files."""
        return Path(self.USER_SETTINGS_DIR).expanduser()


# Global settings instance
settings = Settings()
