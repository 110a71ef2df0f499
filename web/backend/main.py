import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from smart_playlist.core.errors import (
    AuthenticationRequired,
    AuthProviderError,
    ConstraintViolation,
    GenerationFailed,
    MalformedResponse,
    NotFound,
    SmartPlaylistError,
)

app = FastAPI(title="Smart Playlist API", version="0.1.0")

# CORS: Allow environment override for production
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = (
    allowed_origins_env.split(",")
    if allowed_origins_env
    else ["http://localhost:5173"]  # Dev default
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most specific first
ERROR_STATUS = [
    (AuthenticationRequired, 401),
    (AuthProviderError, 401),
    (MalformedResponse, 502),
    (GenerationFailed, 502),
    (ConstraintViolation, 409),
    (NotFound, 404),
]


def status_for(error: SmartPlaylistError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


@app.exception_handler(SmartPlaylistError)
async def smart_playlist_error_handler(request: Request, exc: SmartPlaylistError):
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"detail": str(exc), "code": exc.code})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": "INVALID_REQUEST"})


# Include routers
from web.backend.routers import playlists, users

app.include_router(playlists.router, prefix="/api", tags=["playlists"])
app.include_router(users.router, prefix="/api", tags=["users"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
