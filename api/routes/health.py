from __future__ import annotations

import asyncio
import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.deps import get_config, get_db
from collector import __version__
from collector.core.config import Config
from collector.core.database import Database

router = APIRouter()


class HealthResponse(BaseModel):
    version: str
    uptime_seconds: float
    unique_supporters: bool
    documents: dict[str, int]


@router.get("/health", response_model=HealthResponse)
async def health(
    request: Request,
    config: Config = Depends(get_config),
    db: Database = Depends(get_db),
) -> HealthResponse:
    """Liveness plus document counts per logical collection.

    A store that can not be counted surfaces as 503 through the error handler.
    """

    started_at = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0

    cols = config.collections.model_dump()
    counts = await asyncio.gather(*(asyncio.to_thread(db.count, physical) for physical in cols.values()))

    return HealthResponse(
        version=__version__,
        uptime_seconds=uptime,
        unique_supporters=config.storage.enforce_unique_supporters,
        documents=dict(zip(cols.keys(), counts)),
    )
