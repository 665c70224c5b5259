"""collector.core.models

Core domain models.

Stored documents keep their historical camelCase field names; other tools read
these collections. Python code uses snake_case attributes and aliases bridge the two.
Event records are append-only once written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from collector.core.time import dt_to_iso


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage: aliased names, ISO timestamps, no unset optionals."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Supporter(_Document):
    """The submitting client, keyed by (user_id, public_key)."""

    user_id: int = Field(alias="userId")
    public_key: str = Field(alias="publicKey")
    user_secret: str | None = Field(default=None, alias="userSecret")
    version: str | None = None
    key_time: datetime | None = Field(default=None, alias="keyTime")
    last_activity: datetime | None = Field(default=None, alias="lastActivity")
    tofu: bool | None = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TimelineEvent(_Document):
    id: str
    start_time: datetime = Field(alias="startTime")
    user_id: int = Field(alias="userId")
    geoip: str
    nonfeed: bool | None = None
    tag_id: str | None = Field(default=None, alias="tagId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ImpressionEvent(_Document):
    """A rendered feed item. Never carries inline html; see :class:`HtmlSnippet`."""

    id: str
    timeline_id: str = Field(alias="timelineId")
    user_id: int = Field(alias="userId")
    visibility: str | None = None
    impression_order: int = Field(alias="impressionOrder")
    impression_time: datetime = Field(alias="impressionTime")
    html_id: str | None = Field(default=None, alias="htmlId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class HtmlSnippet(_Document):
    """Content-addressed html of a public impression."""

    id: str
    saving_time: datetime = Field(alias="savingTime")
    user_id: int = Field(alias="userId")
    impression_id: str = Field(alias="impressionId")
    timeline_id: str = Field(alias="timelineId")
    html: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Required transport headers, normalized."""

    length: str
    build: str
    version: str
    supporter_id: int
    public_key: str
    signature: str


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """Per-request metadata stamped onto every normalized record."""

    geoip: str
    user_id: int
    public_key: str
    version: str | None


@dataclass(frozen=True, slots=True)
class BucketSummary:
    kind: str
    amount: int

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "amount": self.amount}


def alarm_document(*, ts: datetime, caller: str, what: str, info: Any) -> dict[str, Any]:
    return {"ts": dt_to_iso(ts), "caller": caller, "what": what, "info": info}
