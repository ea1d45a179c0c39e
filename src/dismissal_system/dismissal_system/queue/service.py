from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local, parse_queue_id, queue_id_for
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_SCHOOL_TIMEZONE
from ..core.enums import DismissalStatus
from ..core.exceptions import ConflictOpenQueue, DuplicateForToday, NoOpenQueue, QueueNotFound
from ..students.repository import StudentDirectory
from .model import DismissalRecord, NewDismissalRecord, Queue, RecordFilter, TransitionMeta
from .repository import QueueRepository
from .state_machine import Action, apply_transition

logger = logging.getLogger(__name__)


class QueueLifecycleService:
    """Owns the daily Queue: start + auto-populate, close with cascade, delete."""

    def __init__(
        self,
        queues: QueueRepository,
        students: StudentDirectory,
        *,
        tz_name: str = DEFAULT_SCHOOL_TIMEZONE,
    ):
        self._queues = queues
        self._students = students
        self._tz_name = tz_name

    def _now(self, now: datetime | None) -> datetime:
        return now or now_local(self._tz_name)

    @staticmethod
    def _check_queue_id(queue_id: str) -> str:
        """Queue ids are days; anything else names a queue that cannot exist."""
        queue_id = require_non_empty(queue_id, "queueId")
        try:
            parse_queue_id(queue_id)
        except ValueError:
            raise QueueNotFound(f"Queue {queue_id} not found")
        return queue_id

    def today_queue_id(self, *, now: datetime | None = None) -> str:
        return queue_id_for(self._now(now).date())

    def start_daily_queue(self, actor: str, *, now: datetime | None = None) -> Queue:
        actor = require_non_empty(actor, "actor")
        now = self._now(now)
        queue_id = self.today_queue_id(now=now)

        open_queue = self._queues.get_open_queue()
        if open_queue:
            logger.warning("start refused: queue %s is still open (actor=%s)", open_queue.queue_id, actor)
            raise ConflictOpenQueue(
                f"A queue is already open with ID: {open_queue.queue_id}. "
                "The open queue must be closed before starting a new one."
            )

        existing = self._queues.get_queue(queue_id)
        if existing:
            logger.warning("start refused: queue %s already exists as %s (actor=%s)", queue_id, existing.status.value, actor)
            raise DuplicateForToday(
                f"A queue with ID {queue_id} already exists (Status: {existing.status.value}). "
                "This queue must be deleted before a new one can be started for today."
            )

        queue = self._queues.create_queue(queue_id, actor, now=now)
        logger.info("queue %s opened by %s", queue_id, actor)

        self.auto_populate(queue_id, actor, now=now)
        return queue

    def auto_populate(self, queue_id: str, actor: str, *, now: datetime | None = None) -> int:
        """Add one Standby record per Active+Present student. Safe to re-run for the same queue."""
        now = self._now(now)
        eligible = self._students.list_active_and_present()
        records = [
            NewDismissalRecord(
                student_id=s.student_id,
                student_name=s.student_name,
                grade=s.grade,
                class_building=s.class_building,
                parent_id=s.parent_id,
            )
            for s in eligible
        ]
        added = self._queues.upsert_dismissal_records(queue_id, records, actor=actor, now=now)
        logger.info("queue %s populated: %d eligible, %d new records", queue_id, len(records), added)
        return added

    def close_open_queue(self, actor: str, *, now: datetime | None = None) -> Queue:
        actor = require_non_empty(actor, "actor")
        now = self._now(now)

        open_queue = self._queues.get_open_queue()
        if not open_queue:
            logger.warning("close refused: no open queue (actor=%s)", actor)
            raise NoOpenQueue("No open queue found to close")

        action = Action.queue_closed()
        cascade_to = apply_transition(DismissalStatus.STANDBY, action)
        queue, cascaded = self._queues.close_queue(
            open_queue.queue_id,
            actor,
            cascade_from=DismissalStatus.STANDBY,
            cascade_to=cascade_to,
            cascade_meta=TransitionMeta(actor=actor, at=now, action=action.kind),
        )
        logger.info(
            "queue %s closed by %s: %d records %s -> %s",
            queue.queue_id,
            actor,
            cascaded,
            DismissalStatus.STANDBY.value,
            cascade_to.value,
        )
        return queue

    def delete_queue(self, queue_id: str, actor: str) -> None:
        queue_id = self._check_queue_id(queue_id)
        actor = require_non_empty(actor, "actor")
        self._queues.delete_queue(queue_id)
        logger.info("queue %s deleted by %s", queue_id, actor)

    def list_queues(self) -> Sequence[Queue]:
        return self._queues.list_queues()

    def get_current_queue(self) -> Optional[Queue]:
        return self._queues.get_open_queue()

    def require_open_queue(self) -> Queue:
        queue = self._queues.get_open_queue()
        if not queue:
            raise NoOpenQueue("No open queue")
        return queue

    def get_records(self, *, grade: str | None = None, queue_id: str | None = None) -> tuple[str, Sequence[DismissalRecord]]:
        """Records of ``queue_id`` (or the open queue), optionally restricted to one grade."""
        if queue_id:
            queue_id = self._check_queue_id(queue_id)
            if not self._queues.get_queue(queue_id):
                raise QueueNotFound(f"Queue {queue_id} not found")
        else:
            queue_id = self.require_open_queue().queue_id
        records = self._queues.get_dismissal_records(queue_id, RecordFilter(grade=grade))
        return queue_id, records

    def populate_open_queue(self, actor: str, *, now: datetime | None = None) -> tuple[Queue, int]:
        """Re-run auto-populate on the open queue, e.g. after a start whose populate step failed."""
        actor = require_non_empty(actor, "actor")
        queue = self.require_open_queue()
        return queue, self.auto_populate(queue.queue_id, actor, now=now)

    def get_parent_records(self, parent_id: str) -> tuple[str, Sequence[DismissalRecord]]:
        """Open-queue records of every student picked up under ``parent_id``."""
        parent_id = require_non_empty(parent_id, "parentId")
        queue_id = self.require_open_queue().queue_id
        return queue_id, self._queues.get_dismissal_records(queue_id, RecordFilter(parent_id=parent_id))
