from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import collector_error_handler
from api.routes import get_api_router
from collector import __version__
from collector.core.config import Config
from collector.core.exceptions import CollectorError, ConfigError


def create_app(config: Config | None = None) -> FastAPI:
    start = time.monotonic()

    if config is None:
        config = Config.from_repo_defaults(Path.cwd())

    # Security check: refuse to start with empty auth_token unless explicitly overridden
    auth_token = str(getattr(config.api, "auth_token", "") or "")
    insecure_ok = os.environ.get("COLLECTOR_INSECURE_OK", "").lower() in ("1", "true", "yes")

    if not auth_token and not insecure_ok:
        msg = (
            "SECURITY ERROR: API auth_token is empty\n"
            "\n"
            "Set COLLECTOR_API__AUTH_TOKEN environment variable or add to config:\n"
            "  api:\n"
            "    auth_token: your-secret-token\n"
            "\n"
            "To run without auth (dev/test only), set COLLECTOR_INSECURE_OK=1"
        )
        raise RuntimeError(msg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = start
        app.state.config = getattr(app.state, "config", None) or config

        from collector.pipeline import open_database

        created_db = False
        if getattr(app.state, "db", None) is None:
            app.state.db = open_database(app.state.config)
            created_db = True

        yield

        db = getattr(app.state, "db", None)
        if created_db and db is not None:
            db.close()

    openapi_tags = [
        {"name": "health", "description": "Liveness and version metadata."},
        {"name": "events", "description": "Signed event batch submission."},
        {"name": "alarms", "description": "Recorded anomalies: TOFU, duplicates, signature failures."},
    ]

    app = FastAPI(
        title="collector API",
        description="Signed telemetry ingestion",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_exception_handler(CollectorError, collector_error_handler)

    # CORS: only enable if origins explicitly configured
    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_credentials=False,
            allow_methods=["POST", "GET"],
            allow_headers=["*"],
        )

    app.include_router(get_api_router(), prefix="/api/v1")
    return app


# Module-level app for uvicorn (e.g. `uvicorn api.main:app`).
# Guarded so test imports don't crash when auth_token or config is missing.
try:
    app = create_app()
except (RuntimeError, ConfigError):
    app = None
