"""collector.pipeline

The submission pipeline, one module per stage.
"""

from collector.pipeline.processor import EventProcessor, Outcome, build_processor, open_database

__all__ = [
    "EventProcessor",
    "Outcome",
    "build_processor",
    "open_database",
]
