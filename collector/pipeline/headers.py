"""collector.pipeline.headers

Required transport headers -> :class:`RequestContext`.

Pure mapping, no I/O. Every header is checked before failing so the client
learns everything that is wrong in one round trip.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from collector.core.exceptions import HeaderError
from collector.core.models import RequestContext
from collector.pipeline.result import Failure

_DECIMAL_ID = re.compile(r"-?[0-9]{1,19}")
# ids are bound as SQLite INTEGER
_ID_MIN = -(2**63)
_ID_MAX = 2**63 - 1


def extract_headers(received: Mapping[str, str], manifest: Mapping[str, str]) -> RequestContext | Failure:
    """Map ``{header-name: field}`` from ``received`` (case-insensitive)."""

    lowered = {str(k).lower(): v for k, v in received.items()}
    fields: dict[str, str] = {}
    missing: list[str] = []
    for header_name, dest in manifest.items():
        value = lowered.get(header_name.lower())
        if value is None:
            missing.append(header_name)
            continue
        fields[dest] = value

    invalid: list[str] = []
    supporter_id: int | None = None
    if "supporter_id" in fields:
        supporter_id = parse_supporter_id(str(fields["supporter_id"]))
        if supporter_id is None:
            invalid.append(_header_for(manifest, "supporter_id"))

    if missing or invalid:
        return Failure(error=HeaderError(missing, invalid), stage="headers")

    return RequestContext(
        length=fields["length"],
        build=fields["build"],
        version=fields["version"],
        supporter_id=int(supporter_id),  # type: ignore[arg-type]
        public_key=fields["public_key"],
        signature=fields["signature"],
    )


def _header_for(manifest: Mapping[str, str], dest: str) -> str:
    for header_name, field in manifest.items():
        if field == dest:
            return header_name
    return dest


def parse_supporter_id(raw: str) -> int | None:
    """Strict ASCII decimal in the signed 64-bit range, else None.

    ``"4_2"``, ``" 42 "`` and non-ASCII digits are all rejected so that one
    identity has exactly one spelling.
    """

    if not _DECIMAL_ID.fullmatch(raw):
        return None
    value = int(raw)
    if not _ID_MIN <= value <= _ID_MAX:
        return None
    return value
