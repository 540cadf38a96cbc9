from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courtpulse.api.routers import auth, health, me
from courtpulse.shared.config import get_settings
from courtpulse.shared.logging_config import configure_logging


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    get_settings().validate_for_startup()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(title="CourtPulse API", version="1.0.0", lifespan=_lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.get("/")
    def root():
        return {
            "name": "CourtPulse API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "health": "GET /health",
                "auth": {
                    "devLogin": "POST /api/auth/dev/login",
                    "google": "POST /api/auth/google",
                    "apple": "POST /api/auth/apple",
                    "refresh": "POST /api/auth/refresh",
                    "logout": "POST /api/auth/logout",
                    "me": "GET /api/auth/me",
                },
            },
        }

    application.include_router(health.router)
    application.include_router(auth.router)
    application.include_router(me.router)
    return application


app = create_app()
