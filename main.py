import logging
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from framegrab.config import get_settings
from framegrab.dependencies import get_media_service
from framegrab.exceptions import MediaError
from framegrab.services.media_service import MediaService
from framegrab.routers import admin_router, recordings_router, screenshot_router
from framegrab.utils.logging_utils import setup_logger

# Load environment variables from .env file
load_dotenv()

settings = get_settings()
logger = setup_logger(log_level=getattr(logging, settings.log_level.upper(), logging.INFO))

app = FastAPI(title="framegrab")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recordings_router)
app.include_router(screenshot_router)
app.include_router(admin_router)


@app.exception_handler(MediaError)
async def media_error_handler(request: Request, exc: MediaError) -> JSONResponse:
    """Render typed media errors with their code and context."""
    body = exc.to_dict()
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health")
async def health(media: MediaService = Depends(get_media_service)):
    return {
        "status": "ok",
        "ffmpeg_installed": media.ffmpeg_installed,
        "ffmpeg_checked": media.capability_checked
    }


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Run the FFmpeg capability check before serving requests."""
    logger.info("Starting application...")
    installed = await get_media_service().ensure_capability()
    if not installed:
        logger.warning("FFmpeg unavailable - thumbnail and screenshot extraction will fail until POST /admin/ffmpeg/recheck succeeds")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="::", port=8000)
