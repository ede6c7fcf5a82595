from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import settings

# Local dev servers for the web client
DEV_ORIGINS = (
    "http://localhost:8080",
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
)


def allowed_origins(configured: str) -> List[str]:
    """Comma-separated configured origins, then the dev origins, without duplicates."""
    origins: List[str] = []
    for origin in [o.strip() for o in configured.split(",")] + list(DEV_ORIGINS):
        if origin and origin not in origins:
            origins.append(origin)
    return origins


def add_cors(app: FastAPI):
    # Bearer tokens travel in the Authorization header, so credentials stay on.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings.ALLOWED_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "content-type"],
        max_age=86400,
    )
