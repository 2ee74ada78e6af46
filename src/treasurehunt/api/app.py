# src/treasurehunt/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and configures CORS for the game client.
Game logic lives in `treasurehunt.api.routes`, `treasurehunt.game` and `treasurehunt.core`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from treasurehunt import __version__
from treasurehunt.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="TreasureHunt API", version=__version__)

# CORS: the game client is served from the chat host's web view, not from this origin.
# Configure via env:
# - TREASUREHUNT_CORS_ORIGINS="https://game.example.org,https://web.example.org"
# - TREASUREHUNT_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("TREASUREHUNT_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("TREASUREHUNT_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = os.getenv("TREASUREHUNT_CORS_ALLOW_ORIGIN_REGEX", "").strip() or (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.get("/healthz", include_in_schema=False)
def healthz() -> dict:
    return {"status": "ok"}
