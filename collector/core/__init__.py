"""collector.core

Core primitives.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import Config
from .database import Database
from .exceptions import CollectorError
from .time import parse_dt, utc_now

__all__ = [
    "CollectorError",
    "Config",
    "Database",
    "utc_now",
    "parse_dt",
]
