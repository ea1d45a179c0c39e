from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_SCHOOL_TIMEZONE
from ..core.enums import AdmissionMethod, ContactKind, DismissalStatus
from ..core.exceptions import InvalidTransition, NoOpenQueue, RecordNotFound
from .model import DismissalRecord, RecordFilter, StatusChange, TransitionMeta
from .repository import QueueRepository
from .state_machine import Action, action_for_target, apply_transition, is_repeat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactInfo:
    """Contact fields stamped onto a record by a QR admission."""

    contact_id: str
    display_name: Optional[str]
    kind: ContactKind


@dataclass(frozen=True)
class TransitionOutcome:
    record: DismissalRecord
    changed: bool


class DismissalStatusService:
    """Applies state-machine transitions to stored DismissalRecords."""

    def __init__(self, queues: QueueRepository, *, tz_name: str = DEFAULT_SCHOOL_TIMEZONE):
        self._queues = queues
        self._tz_name = tz_name

    def _open_queue_id(self) -> str:
        queue = self._queues.get_open_queue()
        if not queue:
            raise NoOpenQueue("No open queue")
        return queue.queue_id

    def apply(
        self,
        *,
        queue_id: str,
        student_id: str,
        action: Action,
        actor: str,
        method: AdmissionMethod | None = None,
        contact: ContactInfo | None = None,
        scanned_at_building: str | None = None,
        now: datetime | None = None,
    ) -> TransitionOutcome:
        """Run one transition for one student.

        A repeated automatic action (duplicate scan, double release) is a no-op
        success: the record is returned untouched with ``changed=False``.
        """
        now = now or now_local(self._tz_name)
        record = self._queues.get_dismissal_record(queue_id, student_id)
        if not record:
            raise RecordNotFound(f"No dismissal record for student {student_id} in queue {queue_id}")

        if is_repeat(record.status, action):
            logger.info(
                "queue %s student %s: repeated %s ignored (already %s, actor=%s)",
                queue_id,
                student_id,
                action.kind.value,
                record.status.value,
                actor,
            )
            return TransitionOutcome(record=record, changed=False)

        new_status = apply_transition(record.status, action)
        meta = TransitionMeta(
            actor=actor,
            at=now,
            action=action.kind,
            method=method,
            contact_id=contact.contact_id if contact else None,
            contact_display_name=contact.display_name if contact else None,
            contact_kind=contact.kind if contact else None,
            scanned_at_building=scanned_at_building,
        )
        # Automatic writes are compare-and-set; manual overrides are last-writer-wins.
        expected = None if action.is_manual else record.status
        updated = self._queues.update_dismissal_status(
            queue_id, student_id, new_status, meta, expected_status=expected
        )
        if updated is None:
            current = self._queues.get_dismissal_record(queue_id, student_id)
            if current and is_repeat(current.status, action):
                logger.info(
                    "queue %s student %s: concurrent %s already applied (actor=%s)",
                    queue_id,
                    student_id,
                    action.kind.value,
                    actor,
                )
                return TransitionOutcome(record=current, changed=False)
            found = current.status.value if current else "missing"
            raise InvalidTransition(
                f"Student {student_id} changed to {found} before {action.kind.value} could apply"
            )

        logger.info(
            "queue %s student %s: %s -> %s (action=%s, method=%s, actor=%s)",
            queue_id,
            student_id,
            record.status.value,
            new_status.value,
            action.kind.value,
            method.value if method else "-",
            actor,
        )
        return TransitionOutcome(record=updated, changed=True)

    def update_student_status(
        self,
        *,
        student_id: str,
        new_status: DismissalStatus,
        method: AdmissionMethod,
        actor: str,
        now: datetime | None = None,
    ) -> DismissalRecord:
        """Single-student status edit.

        A QRScan method is held to the automatic edges; Manual and BulkGrade
        override freely.
        """
        student_id = require_non_empty(student_id, "studentId")
        actor = require_non_empty(actor, "actor")
        if method.is_automatic:
            action = action_for_target(new_status)
        else:
            action = Action.manual_override(new_status)
        outcome = self.apply(
            queue_id=self._open_queue_id(),
            student_id=student_id,
            action=action,
            actor=actor,
            method=method,
            now=now,
        )
        return outcome.record

    def release_student(self, *, student_id: str, actor: str, now: datetime | None = None) -> DismissalRecord:
        return self._automatic(student_id, Action.release(), actor, now)

    def collect_student(self, *, student_id: str, actor: str, now: datetime | None = None) -> DismissalRecord:
        return self._automatic(student_id, Action.collect(), actor, now)

    def _automatic(self, student_id: str, action: Action, actor: str, now: datetime | None) -> DismissalRecord:
        student_id = require_non_empty(student_id, "studentId")
        actor = require_non_empty(actor, "actor")
        outcome = self.apply(
            queue_id=self._open_queue_id(),
            student_id=student_id,
            action=action,
            actor=actor,
            now=now,
        )
        return outcome.record

    def bulk_update_grade(
        self,
        *,
        grade: str,
        new_status: DismissalStatus,
        actor: str,
        now: datetime | None = None,
    ) -> int:
        grade = require_non_empty(grade, "grade")
        actor = require_non_empty(actor, "actor")
        now = now or now_local(self._tz_name)
        queue_id = self._open_queue_id()

        # Manual override ignores the source status, so one target serves every row.
        action = Action.manual_override(new_status)
        target = action.target
        count = self._queues.bulk_update_dismissal_status(
            queue_id,
            RecordFilter(grade=grade),
            target,
            TransitionMeta(actor=actor, at=now, action=action.kind, method=AdmissionMethod.BULK_GRADE),
        )
        logger.info(
            "queue %s grade %s: %d records -> %s (bulk, actor=%s)",
            queue_id,
            grade,
            count,
            target.value,
            actor,
        )
        return count

    def history(self, *, student_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[StatusChange]:
        student_id = require_non_empty(student_id, "studentId")
        return self._queues.get_status_history(self._open_queue_id(), student_id, limit=limit)
