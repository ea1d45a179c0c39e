from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.enums import DismissalStatus


@dataclass(frozen=True)
class StatusCounts:
    """Read-model: how many records sit in each status."""

    queue_id: Optional[str]
    grade: Optional[str] = None
    counts: Dict[DismissalStatus, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def get(self, status: DismissalStatus) -> int:
        return self.counts.get(status, 0)

    def to_dict(self) -> dict:
        return {
            "queueId": self.queue_id,
            "grade": self.grade,
            "countsByStatus": {s.value: n for s, n in self.counts.items()},
            "total": self.total,
        }
