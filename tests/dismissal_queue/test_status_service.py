from __future__ import annotations

import pytest

from src.dismissal_system.dismissal_system.core.enums import ActionKind, AdmissionMethod, DismissalStatus
from src.dismissal_system.dismissal_system.core.exceptions import (
    InvalidTransition,
    NoOpenQueue,
    RecordNotFound,
)
from src.dismissal_system.dismissal_system.queue.model import TransitionMeta
from src.dismissal_system.dismissal_system.queue.service import QueueLifecycleService
from src.dismissal_system.dismissal_system.queue.state_machine import Action
from src.dismissal_system.dismissal_system.queue.status_service import DismissalStatusService

from tests.fakes import NOW, InMemoryQueues, InMemoryStudents, student

QID = "20241202"


def _world():
    queues = InMemoryQueues()
    students = InMemoryStudents([student("s1", grade="3"), student("s2", grade="3"), student("s3", grade="4")])
    QueueLifecycleService(queues, students).start_daily_queue("office", now=NOW)
    return DismissalStatusService(queues), queues


def test_scan_method_follows_automatic_edges():
    svc, _ = _world()
    with pytest.raises(InvalidTransition):
        svc.update_student_status(
            student_id="s1", new_status=DismissalStatus.RELEASED, method=AdmissionMethod.QR_SCAN, actor="t", now=NOW
        )
    with pytest.raises(InvalidTransition):
        svc.update_student_status(
            student_id="s1", new_status=DismissalStatus.NO_SHOW, method=AdmissionMethod.QR_SCAN, actor="t", now=NOW
        )

    record = svc.update_student_status(
        student_id="s1", new_status=DismissalStatus.IN_QUEUE, method=AdmissionMethod.QR_SCAN, actor="t", now=NOW
    )
    assert record.status == DismissalStatus.IN_QUEUE
    assert record.admission_method == AdmissionMethod.QR_SCAN


def test_manual_override_moves_any_to_any():
    svc, _ = _world()
    record = svc.update_student_status(
        student_id="s1", new_status=DismissalStatus.COLLECTED, method=AdmissionMethod.MANUAL, actor="t", now=NOW
    )
    assert record.status == DismissalStatus.COLLECTED
    record = svc.update_student_status(
        student_id="s1", new_status=DismissalStatus.STANDBY, method=AdmissionMethod.MANUAL, actor="t", now=NOW
    )
    assert record.status == DismissalStatus.STANDBY
    assert record.admission_method == AdmissionMethod.MANUAL


def test_release_and_collect_are_idempotent():
    svc, queues = _world()
    svc.apply(queue_id=QID, student_id="s1", action=Action.admit(), actor="t", now=NOW)
    first = svc.release_student(student_id="s1", actor="teacher", now=NOW)
    again = svc.release_student(student_id="s1", actor="teacher", now=NOW)
    assert first.status == again.status == DismissalStatus.RELEASED

    svc.collect_student(student_id="s1", actor="door", now=NOW)
    assert svc.collect_student(student_id="s1", actor="door", now=NOW).status == DismissalStatus.COLLECTED
    assert [c.action for c in queues.log] == [ActionKind.ADMIT, ActionKind.RELEASE, ActionKind.COLLECT]


def test_release_from_standby_is_invalid():
    svc, _ = _world()
    with pytest.raises(InvalidTransition):
        svc.release_student(student_id="s1", actor="teacher", now=NOW)


def test_unknown_student_has_no_record():
    svc, _ = _world()
    with pytest.raises(RecordNotFound):
        svc.release_student(student_id="s999", actor="teacher", now=NOW)


def test_bulk_update_touches_only_that_grade():
    svc, queues = _world()
    count = svc.bulk_update_grade(grade="3", new_status=DismissalStatus.AFTER_CARE, actor="office", now=NOW)

    assert count == 2
    statuses = {r.student_id: r.status for r in queues.get_dismissal_records(QID)}
    assert statuses == {
        "s1": DismissalStatus.AFTER_CARE,
        "s2": DismissalStatus.AFTER_CARE,
        "s3": DismissalStatus.STANDBY,
    }
    assert {r.admission_method for r in queues.get_dismissal_records(QID, None) if r.grade == "3"} == {
        AdmissionMethod.BULK_GRADE
    }


def test_status_updates_need_an_open_queue():
    queues = InMemoryQueues()
    svc = DismissalStatusService(queues)
    with pytest.raises(NoOpenQueue):
        svc.bulk_update_grade(grade="3", new_status=DismissalStatus.NO_SHOW, actor="office", now=NOW)


def test_history_is_newest_first():
    svc, _ = _world()
    svc.apply(queue_id=QID, student_id="s1", action=Action.admit(), actor="scanner", now=NOW)
    svc.release_student(student_id="s1", actor="teacher", now=NOW)

    history = svc.history(student_id="s1")
    assert [(c.old_status, c.new_status) for c in history] == [
        (DismissalStatus.IN_QUEUE, DismissalStatus.RELEASED),
        (DismissalStatus.STANDBY, DismissalStatus.IN_QUEUE),
    ]


class _RacingQueues(InMemoryQueues):
    """Another writer moves the record just before our compare-and-set lands."""

    def __init__(self, sneak_in: DismissalStatus):
        super().__init__()
        self._sneak_in = sneak_in

    def update_dismissal_status(self, queue_id, student_id, new_status, meta, *, expected_status=None):
        if expected_status is not None and self._sneak_in is not None:
            other = TransitionMeta(actor="other", at=NOW, action=ActionKind.MANUAL_OVERRIDE)
            super().update_dismissal_status(queue_id, student_id, self._sneak_in, other)
            self._sneak_in = None
        return super().update_dismissal_status(
            queue_id, student_id, new_status, meta, expected_status=expected_status
        )


def _racing_world(sneak_in):
    queues = _RacingQueues(sneak_in)
    QueueLifecycleService(queues, InMemoryStudents([student("s1")])).start_daily_queue("office", now=NOW)
    return DismissalStatusService(queues), queues


def test_concurrent_duplicate_admit_is_a_noop():
    svc, queues = _racing_world(DismissalStatus.IN_QUEUE)
    outcome = svc.apply(queue_id=QID, student_id="s1", action=Action.admit(), actor="scanner", now=NOW)

    assert not outcome.changed
    assert outcome.record.status == DismissalStatus.IN_QUEUE
    assert len(queues.log) == 1


def test_concurrent_conflicting_change_is_not_overwritten():
    svc, queues = _racing_world(DismissalStatus.NO_SHOW)
    with pytest.raises(InvalidTransition):
        svc.apply(queue_id=QID, student_id="s1", action=Action.admit(), actor="scanner", now=NOW)
    assert queues.get_dismissal_record(QID, "s1").status == DismissalStatus.NO_SHOW
