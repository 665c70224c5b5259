"""collector.core.geoip

Coarse location for a submitting client.

Resolution is a static CIDR table from config. A client that can not be placed
is recorded as ``redacted``, never by its raw address; loopback stays visible
so local development is recognisable.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from dataclasses import dataclass

LOOPBACK = "127.0.0.1"
REDACTED = "redacted"


@dataclass(frozen=True, slots=True)
class GeoInfo:
    code: str | None
    ip: str


class GeoIPResolver:
    def __init__(self, networks: Mapping[str, str] | None = None) -> None:
        self._networks = [
            (ipaddress.ip_network(cidr, strict=False), str(code))
            for cidr, code in (networks or {}).items()
        ]
        # most specific first
        self._networks.sort(key=lambda nc: nc[0].prefixlen, reverse=True)

    def lookup(self, ip: str) -> GeoInfo:
        try:
            addr = ipaddress.ip_address(ip)
        except ValueError:
            return GeoInfo(code=None, ip=ip)
        for net, code in self._networks:
            if addr.version == net.version and addr in net:
                return GeoInfo(code=code, ip=ip)
        return GeoInfo(code=None, ip=ip)

    def session_geoip(self, forwarded_for: str | None) -> str:
        """Geo code for the session, the loopback address, or ``redacted``."""

        ip = client_ip(forwarded_for)
        info = self.lookup(ip)
        if info.code:
            return info.code
        if info.ip == LOOPBACK:
            return LOOPBACK
        return REDACTED


def client_ip(forwarded_for: str | None) -> str:
    """First hop of ``x-forwarded-for``; loopback when absent."""

    if not forwarded_for:
        return LOOPBACK
    first = forwarded_for.split(",")[0].strip()
    return first or LOOPBACK
