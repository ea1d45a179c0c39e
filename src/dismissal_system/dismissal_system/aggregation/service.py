from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, Optional

from ..common.validators import require_non_empty
from ..core.enums import DismissalStatus
from ..queue.model import DismissalRecord, RecordFilter
from ..queue.repository import QueueRepository
from .model import StatusCounts
from .poller import Poller


def tally(records: Iterable[DismissalRecord], *, queue_id: Optional[str], grade: Optional[str] = None) -> StatusCounts:
    found = Counter(r.status for r in records)
    return StatusCounts(
        queue_id=queue_id,
        grade=grade,
        counts={status: found.get(status, 0) for status in DismissalStatus},
    )


class AggregationService:
    """Status counts over the current queue's records."""

    def __init__(self, queues: QueueRepository):
        self._queues = queues

    def counts_by_grade(self, grade: str) -> StatusCounts:
        grade = require_non_empty(grade, "grade")
        queue = self._queues.get_open_queue()
        if not queue:
            return StatusCounts(queue_id=None, grade=grade)
        records = self._queues.get_dismissal_records(queue.queue_id, RecordFilter(grade=grade))
        return tally(records, queue_id=queue.queue_id, grade=grade)

    def counts_school_wide(self) -> StatusCounts:
        queue = self._queues.get_open_queue()
        if not queue:
            return StatusCounts(queue_id=None)
        return tally(self._queues.get_dismissal_records(queue.queue_id), queue_id=queue.queue_id)

    def poller(
        self,
        on_result: Callable[[StatusCounts], None],
        *,
        interval: float,
        grade: str | None = None,
        max_ticks: int | None = None,
    ) -> Poller[StatusCounts]:
        """Bounded auto-refresh of grade (or school-wide) counts; call ``start()`` on the result."""
        if grade:
            return Poller(lambda: self.counts_by_grade(grade), on_result, interval=interval, max_ticks=max_ticks)
        return Poller(self.counts_school_wide, on_result, interval=interval, max_ticks=max_ticks)
