from __future__ import annotations

import pytest

from collector import __version__
from collector.security.signing import ClientKeyPair
from tests.unit._api_test_client import collector_client
from tests.unit._signed import body_of, signed_headers, timeline_event


@pytest.mark.anyio
async def test_health_on_empty_store(test_config):
    async with collector_client(test_config) as (ac, _db):
        r = await ac.get("/api/v1/health")

    assert r.status_code == 200
    js = r.json()
    assert js["version"] == __version__
    assert js["unique_supporters"] is True
    assert js["documents"] == {"supporters": 0, "timelines": 0, "impressions": 0, "htmls": 0, "alarms": 0}


@pytest.mark.anyio
async def test_health_counts_documents_by_logical_name(test_config):
    pair = ClientKeyPair.generate()
    body = body_of([timeline_event("abc"), timeline_event("def")])

    async with collector_client(test_config) as (ac, _db):
        await ac.post("/api/v1/events", content=body, headers=signed_headers(pair, body))
        r = await ac.get("/api/v1/health")

    docs = r.json()["documents"]
    assert docs["supporters"] == 1
    assert docs["timelines"] == 2
    assert docs["alarms"] == 1


@pytest.mark.anyio
async def test_health_reports_uniqueness_mode(test_config):
    cfg = test_config.model_copy(
        update={"storage": test_config.storage.model_copy(update={"enforce_unique_supporters": False})}
    )
    async with collector_client(cfg) as (ac, _db):
        r = await ac.get("/api/v1/health")

    assert r.json()["unique_supporters"] is False
