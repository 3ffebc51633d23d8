"""
Main FastAPI application for the Voice Journal service.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_journal import __version__
from voice_journal.config import settings
from voice_journal.database import check_db_connection
from voice_journal.middleware.error_handler import register_error_handlers
from voice_journal.middleware.logging import RequestLoggingMiddleware
from voice_journal.routes import auth, entries, health, recordings, storage
from voice_journal.routes import settings as settings_routes
from voice_journal.services.recording import RecordingRegistry
from voice_journal.services.transcription_stage import TranscriptionStage
from voice_journal.utils.logger import get_logger

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting Voice Journal service")
    logger.info(f"Environment: {'DEBUG' if settings.DEBUG else 'PRODUCTION'}")

    if await check_db_connection():
        logger.info("Database connection established")
    else:
        logger.error("Failed to connect to database")

    bucket_path = Path(settings.AUDIO_STORAGE_PATH) / settings.STORAGE_BUCKET
    bucket_path.mkdir(parents=True, exist_ok=True)
    logger.info("Storage bucket configured", path=str(bucket_path))

    degraded = TranscriptionStage.degraded_reason()
    if degraded:
        logger.warning("Transcription runs in placeholder mode", reason=degraded)
    else:
        logger.info(
            "Transcription enabled",
            provider=settings.TRANSCRIPTION_PROVIDER,
            model=settings.ELEVENLABS_MODEL
        )

    yield

    logger.info("Shutting down Voice Journal service")
    app.state.recordings.close_all()


app = FastAPI(
    title="Voice Journal Service",
    description="Record, transcribe and replay voice journal entries",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# In-process session registry; one worker holds all live recordings
app.state.recordings = RecordingRegistry()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(recordings.router, prefix="/api/v1", tags=["Recordings"])
app.include_router(entries.router, prefix="/api/v1", tags=["Entries"])
app.include_router(storage.router, prefix="/api/v1", tags=["Storage"])
app.include_router(settings_routes.router, prefix="/api/v1", tags=["Settings"])


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Voice Journal Service",
        "docs": "/docs",
        "health": "/api/v1/health"
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "voice_journal.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=1 if settings.RELOAD else settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
