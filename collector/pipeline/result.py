"""collector.pipeline.result

Stages hand back either their output or a :class:`Failure`. The processor
checks after every stage and stops at the first failure; nothing is left to
bubble up on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from collector.core.exceptions import CollectorError


@dataclass(frozen=True, slots=True)
class Failure:
    error: CollectorError
    stage: str

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def status(self) -> int:
        return self.error.status

    def response(self) -> dict[str, Any]:
        return {"status": "error", "info": self.error.public_message}
