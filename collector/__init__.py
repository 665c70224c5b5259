"""collector

Signed telemetry ingestion.

Clients observe a feed, sign what they saw, and submit it in batches.
The collector decides who they are, whether to believe them, and what to keep.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "1.0.0"
