"""FastAPI application exposing the FaceCloud JSON API."""

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from ..config import CONFIG, reload_config
from .routes import auth, clinics, drafts, equipment, onboarding, rooms, staff


load_dotenv()
reload_config()

app = FastAPI(
    title=os.getenv("API_TITLE", "FaceCloud API"),
    version=os.getenv("API_VERSION", "1.0.0"),
    description=(
        "JSON API for FaceCloud clinic management. "
        "Authenticate using a Supabase JWT in the Authorization header."
    ),
)


def _configure_cors(api_app: FastAPI) -> None:
    origins = list(CONFIG.cors_origins)
    if not origins:
        return

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_configure_cors(app)


@app.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    """Liveness check."""

    return {"status": "ok"}


app.include_router(auth.router, tags=["auth"])
app.include_router(clinics.router, prefix="/v1", tags=["clinics"])
app.include_router(staff.router, prefix="/v1", tags=["staff"])
app.include_router(rooms.router, prefix="/v1", tags=["rooms"])
app.include_router(equipment.router, prefix="/v1", tags=["equipment"])
app.include_router(drafts.router, prefix="/v1", tags=["drafts"])
app.include_router(onboarding.router, prefix="/v1", tags=["onboarding"])
