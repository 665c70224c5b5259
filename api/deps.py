from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import Request

from collector.core.alarms import AlarmReporter
from collector.core.config import Config
from collector.core.database import Database
from collector.pipeline import EventProcessor, build_processor, open_database


@lru_cache
def _repo_root() -> Path:
    # Assume running from repo root (uvicorn started there). Fallback to parent of this file.
    here = Path(__file__).resolve()
    for p in [Path.cwd(), here.parent.parent]:
        if (p / "config" / "default.yaml").exists():
            return p
    return Path.cwd()


@lru_cache
def _load_config() -> Config:
    return Config.from_repo_defaults(_repo_root())


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "config", None)
    return cfg or _load_config()


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is not None:
        return db
    db = open_database(get_config(request))
    request.app.state.db = db
    return db


def get_processor(request: Request) -> EventProcessor:
    proc = getattr(request.app.state, "processor", None)
    if proc is not None:
        return proc
    proc = build_processor(get_config(request), get_db(request))
    request.app.state.processor = proc
    return proc


def get_alarms(request: Request) -> AlarmReporter:
    return get_processor(request).alarms
