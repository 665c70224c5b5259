from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.auth import OperatorAuth
from api.deps import get_alarms
from collector.core.alarms import AlarmReporter

router = APIRouter(prefix="/alarms", dependencies=[OperatorAuth])


class AlarmResponse(BaseModel):
    ts: str
    caller: str
    what: str
    info: Any = None


@router.get("", response_model=list[AlarmResponse])
def list_alarms(
    alarms: AlarmReporter = Depends(get_alarms),
    limit: int = Query(100, ge=1, le=500),
    what: str | None = Query(None, description="e.g. TOFU, duplicated user"),
) -> list[AlarmResponse]:
    return [AlarmResponse(**a) for a in alarms.recent(limit=limit, what=what)]
