"""
FastAPI application wiring for the WineMatch API.

Routes live in `winematch.api.routes`; this module only builds the app, configures
logging and opens CORS for the tasting web frontend.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from winematch import __version__
from winematch.core.logging import configure_logging

from .routes import router

_LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y"}


def _cors_options() -> dict | None:
    """CORS settings from env, or None to leave CORS off.

    - WINEMATCH_CORS_ORIGINS: comma-separated allowlist (e.g. the deployed web app)
    - WINEMATCH_CORS_ALLOW_ORIGIN_REGEX: explicit origin regex
    - WINEMATCH_CORS_ALLOW_LOCAL=0: stop allowing localhost when no allowlist is set
    """
    origins = [o.strip() for o in os.getenv("WINEMATCH_CORS_ORIGINS", "").split(",") if o.strip()]
    regex = os.getenv("WINEMATCH_CORS_ALLOW_ORIGIN_REGEX", "").strip()
    if not regex and not origins and _truthy(os.getenv("WINEMATCH_CORS_ALLOW_LOCAL", "1")):
        regex = _LOCAL_ORIGIN_REGEX
    if not origins and not regex:
        return None
    return {
        "allow_origins": origins,
        "allow_origin_regex": regex or None,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST"],
        "allow_headers": ["*"],
    }


configure_logging()

app = FastAPI(title="WineMatch API", version=__version__)

cors = _cors_options()
if cors is not None:
    app.add_middleware(CORSMiddleware, **cors)

app.include_router(router)
